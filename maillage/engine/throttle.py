from __future__ import annotations

import time
from typing import Callable

from .ports import CacheStore

DEFAULT_THROTTLE_KEY_PREFIX = "maillage:throttle"


class SlidingWindowRateThrottle:
    """Simple sliding-window rate limiter over the injected cache store."""

    def __init__(
        self,
        cache: CacheStore,
        *,
        limit: int,
        window: int,
        key_prefix: str = DEFAULT_THROTTLE_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache = cache
        self.limit = limit
        self.window = window
        self.key_prefix = key_prefix
        self.clock = clock

    def acquire(self, name: str) -> bool:
        """Record one call for ``name``; return False when the window is full."""

        cache_key = f"{self.key_prefix}:{name}"
        now = self.clock()
        bucket = self.cache.get(cache_key) or []
        bucket = [timestamp for timestamp in bucket if timestamp > now - self.window]

        if len(bucket) >= self.limit:
            return False

        bucket.append(now)
        self.cache.set(cache_key, bucket, self.window)
        return True

    def retry_after(self, name: str) -> float:
        """Seconds until the oldest call in the window expires."""

        now = self.clock()
        bucket = [timestamp for timestamp in self.cache.get(f"{self.key_prefix}:{name}") or [] if timestamp > now - self.window]
        if not bucket or len(bucket) < self.limit:
            return 0.0
        return max(0.0, min(bucket) + self.window - now)
