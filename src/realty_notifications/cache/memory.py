"""In-memory cache backend with TTL support."""

from __future__ import annotations

import fnmatch
import math
import time
from collections.abc import Callable

from ..ports.cache import ICacheBackend


class InMemoryCacheBackend(ICacheBackend):
    """
    Dict-backed backend for tests and single-process deployments.

    Expiry is lazy: entries are dropped when next touched after their
    deadline.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self.closed = False

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def expire(self, key: str, ttl: int) -> bool:
        entry = self._live(key)
        if entry is None:
            return False
        self._data[key] = (entry[0], self._clock() + ttl)
        return True

    async def ttl(self, key: str) -> int | None:
        entry = self._live(key)
        if entry is None or entry[1] is None:
            return None
        return math.ceil(entry[1] - self._clock())

    async def incr(self, key: str) -> int:
        entry = self._live(key)
        value = int(entry[0]) + 1 if entry else 1
        self._data[key] = (str(value), entry[1] if entry else None)
        return value

    async def mget(self, keys: list[str]) -> list[str | None]:
        return [await self.get(key) for key in keys]

    async def keys(self, pattern: str) -> list[str]:
        return [k for k in list(self._data) if self._live(k) and fnmatch.fnmatchcase(k, pattern)]

    async def ping(self) -> bool:
        return not self.closed

    async def close(self) -> None:
        self.closed = True
