"""ICacheBackend - Protocol for the raw key/value store behind the cache."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ICacheBackend(Protocol):
    """
    Raw string key/value store with TTLs.

    Keys arrive fully namespaced and values pre-serialized; backends may
    raise on connectivity problems, ``NotificationCache`` absorbs them.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int | None = None) -> None: ...

    async def delete(self, *keys: str) -> int: ...

    async def exists(self, key: str) -> bool: ...

    async def expire(self, key: str, ttl: int) -> bool: ...

    async def ttl(self, key: str) -> int | None:
        """Remaining lifetime in seconds, ``None`` if missing or persistent."""
        ...

    async def incr(self, key: str) -> int: ...

    async def mget(self, keys: list[str]) -> list[str | None]: ...

    async def keys(self, pattern: str) -> list[str]:
        """Keys matching a glob-style pattern."""
        ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
