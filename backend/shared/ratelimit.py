"""In-memory sliding window rate limiter for auth attempt throttling.

State is process-local and resets on restart. This is UX throttling for
sign-in and sign-up forms, not a security control.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitPolicy:
    """Attempt budget for one class of operation."""

    max_attempts: int
    window_seconds: float


# 5 attempts per 15 minutes for sign-in/sign-up, 10 per minute otherwise
AUTH_POLICY = RateLimitPolicy(max_attempts=5, window_seconds=15 * 60)
GENERAL_POLICY = RateLimitPolicy(max_attempts=10, window_seconds=60)


@dataclass
class RateLimitResult:
    """Outcome of a single check, with the numbers a caller needs for headers."""

    allowed: bool
    limit: int
    remaining: int  # attempts left in the current window
    retry_after: float  # seconds until a slot frees up (0 if allowed)


class SlidingWindowRateLimiter:
    """Track attempt timestamps per key and cap them within a rolling window.

    Check-and-record happens under a lock so two near-simultaneous callers
    cannot both take the last slot. Expired timestamps are pruned lazily
    on every call for the key being checked.
    """

    def __init__(
        self,
        max_attempts: int = AUTH_POLICY.max_attempts,
        window_seconds: float = AUTH_POLICY.window_seconds,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._clock = clock
        self._attempts: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_policy(
        cls,
        policy: RateLimitPolicy,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> SlidingWindowRateLimiter:
        return cls(policy.max_attempts, policy.window_seconds, clock=clock)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def window_seconds(self) -> float:
        return self._window

    def is_allowed(self, key: str) -> bool:
        """Record an attempt and return True, or return False without recording."""
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitResult:
        """Atomic prune + check + record for ``key``."""
        with self._lock:
            now = self._clock()
            attempts = self._prune(key, now)
            if len(attempts) >= self._max_attempts:
                retry_after = max(0.0, attempts[0] + self._window - now)
                logger.warning("rate limit exceeded", key=key, retry_after=round(retry_after, 1))
                return RateLimitResult(allowed=False, limit=self._max_attempts, remaining=0, retry_after=retry_after)
            attempts.append(now)
            return RateLimitResult(
                allowed=True,
                limit=self._max_attempts,
                remaining=self._max_attempts - len(attempts),
                retry_after=0.0,
            )

    def get_remaining_time(self, key: str) -> float:
        """Seconds until the oldest in-window attempt expires; 0 when under the limit."""
        with self._lock:
            now = self._clock()
            attempts = self._prune(key, now)
            if len(attempts) < self._max_attempts:
                return 0.0
            return max(0.0, attempts[0] + self._window - now)

    def reset(self, key: str) -> None:
        """Forget all attempts for ``key``."""
        with self._lock:
            self._attempts.pop(key, None)

    def _prune(self, key: str, now: float) -> deque[float]:
        attempts = self._attempts.setdefault(key, deque())
        cutoff = now - self._window
        while attempts and attempts[0] <= cutoff:
            attempts.popleft()
        return attempts
