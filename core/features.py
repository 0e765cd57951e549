"""
core/features.py -- Feature flag configuration reported by GET /api/status.

Static for now: flags ship with the release and change only on redeploy.
Pattern: Data class (pure data container), same as core/models.py.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class FeatureFlag:
    enabled: bool
    version: str | None = None
    rollout_percentage: int | None = None
    steps: int | None = None
    variant: str | None = None
    users: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Wire shape: camelCase keys, unset fields omitted."""
        names = {"rollout_percentage": "rolloutPercentage"}
        out: dict = {}
        for key, value in asdict(self).items():
            if value is None or value == ():
                continue
            out[names.get(key, key)] = list(value) if isinstance(value, tuple) else value
        return out


FEATURE_FLAGS: dict[str, FeatureFlag] = {
    "newDashboard": FeatureFlag(enabled=True, version="2.1", rollout_percentage=75),
    "userOnboarding": FeatureFlag(enabled=True, steps=5),
    "complexFeatureX": FeatureFlag(
        enabled=True,
        variant="A",
        users=("user123", "admin456"),
        rollout_percentage=75,
    ),
}


def feature_flags() -> dict[str, dict]:
    """Return the flag table in its JSON response shape."""
    return {name: flag.to_dict() for name, flag in FEATURE_FLAGS.items()}
