"""Redis cache backend over ``redis.asyncio``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..ports.cache import ICacheBackend

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def _decode(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisCacheBackend(ICacheBackend):
    """
    Thin async adapter over a Redis client.

    Connection errors propagate; ``NotificationCache`` turns them into
    cache misses.
    """

    def __init__(self, redis_client: Redis[Any]) -> None:
        self._redis = redis_client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisCacheBackend:
        from redis.asyncio import from_url

        kwargs.setdefault("decode_responses", True)
        return cls(from_url(url, **kwargs))

    @property
    def client(self) -> Redis[Any]:
        return self._redis

    async def get(self, key: str) -> str | None:
        return _decode(await self._redis.get(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        if ttl:
            await self._redis.setex(key, ttl, value)
        else:
            await self._redis.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._redis.delete(*keys))

    async def exists(self, key: str) -> bool:
        return bool(await self._redis.exists(key))

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self._redis.expire(key, ttl))

    async def ttl(self, key: str) -> int | None:
        remaining = int(await self._redis.ttl(key))
        # -2: missing key, -1: no expiry
        return remaining if remaining >= 0 else None

    async def incr(self, key: str) -> int:
        return int(await self._redis.incr(key))

    async def mget(self, keys: list[str]) -> list[str | None]:
        if not keys:
            return []
        values = await self._redis.mget(keys)
        return [_decode(v) for v in values]

    async def keys(self, pattern: str) -> list[str]:
        """Caution: This is expensive (SCAN)."""
        found: list[str] = []
        cursor: int = 0
        while True:
            cursor, batch = await self._redis.scan(cursor, match=pattern)
            found.extend(k for k in (_decode(key) for key in batch) if k is not None)
            if cursor == 0:
                break
        return found

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()
