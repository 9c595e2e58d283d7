"""
In-Memory Cache Implementation

Process-local TTL cache for tests and single-process runs.
The clock is injectable so expiry can be tested without sleeping.

Expired entries are dropped when read and swept on every write, so
the cache holds at most the keys written within one TTL window.
"""

import time
from typing import Callable, Optional

from expense_tracker.services.cache.interface import CacheInterface


class InMemoryCache(CacheInterface):

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # key -> (expires_at, value)
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (now + ttl_seconds, value)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
