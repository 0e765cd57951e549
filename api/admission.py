"""
api/admission.py -- Admission gate: fixed-window request quota per client key.

One AdmissionGate instance lives on app.state.admission for the lifetime of the
process. The HTTP middleware in api/main.py calls admit() once per request
under Settings.api_prefix, keyed by client address (slowapi's
get_remote_address). Health endpoints sit outside the prefix and are never
counted.

The counting engine is limits' FixedWindowRateLimiter, the same engine slowapi
drives, over a MemoryStorage. AdmissionGate owns the limiter and its storage so
each app (and each test) gets an isolated counter table, and turns the
limiter's bool into an Allowed / Rejected decision carrying the numbers the
RateLimit-* and Retry-After headers need.

Window semantics:
  Fixed window per key, opened by that key's first request and lasting
  window_seconds. Every request in the window increments the count -- rejected
  ones included -- and requests beyond `limit` are Rejected with the seconds
  left in the window. A burst straddling a window boundary can therefore see
  up to ~2x `limit` admissions in a short span.

Concurrency:
  MemoryStorage.incr() is lock-guarded, so two requests from the same key never
  lose an increment. Elapsed keys are dropped by the storage's own expiry
  timer; nothing here needs a purge task.

State is in-process: running several workers or instances gives each its own
quota. Passing a shared limits storage (e.g. RedisStorage) to the constructor
would share it.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from limits import RateLimitItemPerSecond, parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger("vss.admission")

DEFAULT_LIMIT = 1000
DEFAULT_WINDOW_SECONDS = 15 * 60


@dataclass(frozen=True)
class Allowed:
    limit: int
    remaining: int
    reset_after: int  # seconds until the window closes


@dataclass(frozen=True)
class Rejected:
    limit: int
    retry_after: int  # seconds until the window closes, >= 1


class AdmissionGate:
    """Fixed-window counter keyed by client address.

    Usage:
        gate = AdmissionGate.from_rate("1000/15 minutes")
        decision = gate.admit("203.0.113.7")
        if isinstance(decision, Rejected):
            ...  # 429 with Retry-After: decision.retry_after
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        storage: Optional[Storage] = None,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.limit = limit
        self.window_seconds = int(window_seconds)
        self._item = RateLimitItemPerSecond(limit, self.window_seconds)
        self._storage = storage if storage is not None else MemoryStorage()
        self._limiter = FixedWindowRateLimiter(self._storage)

    @classmethod
    def from_rate(cls, rate: str, storage: Optional[Storage] = None) -> "AdmissionGate":
        """Build a gate from a limits rate string such as "1000/15 minutes"."""
        item = parse(rate)
        return cls(limit=item.amount, window_seconds=item.get_expiry(), storage=storage)

    def _seconds_to_reset(self, reset_time: float, floor: int) -> int:
        # Clamped to the window: reset_time - now can round to a hair above it.
        return min(self.window_seconds, max(floor, math.ceil(reset_time - time.time())))

    def admit(self, client_key: str) -> Allowed | Rejected:
        """Count one request for client_key and decide whether it may proceed."""
        allowed = self._limiter.hit(self._item, client_key)
        stats = self._limiter.get_window_stats(self._item, client_key)
        if not allowed:
            if self.count(client_key) == self.limit + 1:
                logger.warning("Admission quota exceeded for %s (limit=%d)", client_key, self.limit)
            return Rejected(limit=self.limit, retry_after=self._seconds_to_reset(stats.reset_time, 1))
        return Allowed(
            limit=self.limit,
            remaining=stats.remaining,
            reset_after=self._seconds_to_reset(stats.reset_time, 0),
        )

    def count(self, client_key: str) -> int:
        """Return the number of requests counted for client_key in its current window."""
        return self._storage.get(self._item.key_for(client_key))

    def reset(self) -> None:
        """Forget every key's count."""
        self._storage.reset()
