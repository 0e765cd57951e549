"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class UserRecord:
    """A stored credential as returned by UserStore.find_by_username().

    password_hash is a bcrypt digest, never the plaintext. It must not be
    copied into any response model or log line -- routes build their
    responses from id/username/email only.
    """

    username: str
    password_hash: str
    id: int | None = None
    email: str | None = None
    created_at: str | None = None

    def __repr__(self) -> str:
        return f"UserRecord(id={self.id!r}, username={self.username!r})"


@dataclass(frozen=True)
class Claims:
    """Identity claims carried by a verified token.

    issued_at / expires_at are POSIX seconds (the JWT iat / exp claims).
    """

    id: int
    username: str
    issued_at: int
    expires_at: int

    def to_dict(self) -> dict:
        """Payload shape returned to clients (matches the JWT claim names)."""
        return {
            "id": self.id,
            "username": self.username,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }
