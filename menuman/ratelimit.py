"""
Fixed-window rate limiting over a KeyValueStore.

Counters live in the injected store, not in process memory, so every
worker sharing the store (e.g. a Redis-backed Django cache) sees the
same counts.
"""

import time
from dataclasses import dataclass

from menuman.protocols.store import KeyValueStore

KEY_PREFIX = "menuman:rate_limit"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float


class RateLimiter:
    def __init__(
        self,
        store: KeyValueStore,
        max_requests: int = 100,
        window_seconds: int = 15 * 60,
        clock=time.time,
    ) -> None:
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def _keys(self, identifier: str) -> tuple[str, str]:
        base = f"{KEY_PREFIX}:{identifier}"
        return f"{base}:count", f"{base}:reset"

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier and report whether it is allowed."""
        count_key, reset_key = self._keys(identifier)
        now = self.clock()

        reset_at = self.store.get(reset_key)
        if reset_at is None or now >= reset_at:
            reset_at = now + self.window_seconds
            self.store.set(reset_key, reset_at, timeout=self.window_seconds)
            self.store.set(count_key, 0, timeout=self.window_seconds)

        if self.store.add(count_key, 1, timeout=self.window_seconds):
            count = 1
        else:
            try:
                count = self.store.incr(count_key)
            except ValueError:
                # expired between add() and incr()
                self.store.set(count_key, 1, timeout=self.window_seconds)
                count = 1

        if count > self.max_requests:
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)
        return RateLimitResult(
            allowed=True, remaining=self.max_requests - count, reset_at=reset_at
        )

    def reset(self, identifier: str) -> None:
        for key in self._keys(identifier):
            self.store.delete(key)
