"""Namespaced read-through cache used by the notification engine."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel

from ..exceptions import CacheUnavailableError
from ..models import InAppNotification, NotificationStats
from ..ports.cache import ICacheBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PREFIX = "realestate:"
DEFAULT_TTL = 3600
NOTIFICATION_LIST_TTL = 300
NOTIFICATION_STATS_TTL = 600
UNREAD_COUNT_TTL = 300
SESSION_TTL = 86400
RATE_LIMIT_WINDOW = 3600


def user_notifications_key(user_id: str) -> str:
    return f"notifications:user:{user_id}"


def user_stats_key(user_id: str) -> str:
    return f"notifications:stats:{user_id}"


def user_unread_key(user_id: str) -> str:
    return f"notifications:unread:{user_id}"


def scheduled_key(notification_id: str) -> str:
    return f"scheduled:{notification_id}"


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


def rate_limit_key(identifier: str) -> str:
    return f"ratelimit:{identifier}"


def _serialize(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    return json.dumps(value, default=str)


def _deserialize(raw: str, cls: type[Any] | None) -> Any:
    if cls is not None and hasattr(cls, "model_validate_json"):
        return cls.model_validate_json(raw)
    return json.loads(raw)


class NotificationCache:
    """
    JSON cache with a single key prefix over an ``ICacheBackend``.

    Every operation degrades to a miss (``None``/``False``/``0``) when the
    cache is disabled or the backend fails, so callers never need to handle
    cache errors. Failures are logged at warning level; disabled mode is
    silent.
    """

    def __init__(
        self,
        backend: ICacheBackend | None,
        *,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: int = DEFAULT_TTL,
        enabled: bool = True,
    ) -> None:
        self._backend = backend
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._enabled = enabled and backend is not None

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _require_backend(self) -> ICacheBackend:
        if not self._enabled or self._backend is None:
            raise CacheUnavailableError("cache is disabled")
        return self._backend

    async def _guard(
        self,
        operation: str,
        key: str,
        action: Callable[[ICacheBackend], Awaitable[T]],
        default: T,
    ) -> T:
        try:
            return await action(self._require_backend())
        except CacheUnavailableError:
            return default
        except Exception as e:  # noqa: BLE001
            logger.warning("Cache %s failed for key %s: %s", operation, key, e)
            return default

    # ── Generic primitives ───────────────────────────────────────

    async def get(self, key: str, cls: type[Any] | None = None) -> Any | None:
        async def action(backend: ICacheBackend) -> Any | None:
            raw = await backend.get(self.key(key))
            return None if raw is None else _deserialize(raw, cls)

        return await self._guard("get", key, action, None)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        async def action(backend: ICacheBackend) -> bool:
            await backend.set(self.key(key), _serialize(value), ttl or self._default_ttl)
            return True

        return await self._guard("set", key, action, False)

    async def delete(self, *keys: str) -> bool:
        async def action(backend: ICacheBackend) -> bool:
            return await backend.delete(*(self.key(k) for k in keys)) > 0

        return await self._guard("delete", ",".join(keys), action, False)

    async def exists(self, key: str) -> bool:
        async def action(backend: ICacheBackend) -> bool:
            return await backend.exists(self.key(key))

        return await self._guard("exists", key, action, False)

    async def expire(self, key: str, ttl: int) -> bool:
        async def action(backend: ICacheBackend) -> bool:
            return await backend.expire(self.key(key), ttl)

        return await self._guard("expire", key, action, False)

    async def ttl(self, key: str) -> int | None:
        async def action(backend: ICacheBackend) -> int | None:
            return await backend.ttl(self.key(key))

        return await self._guard("ttl", key, action, None)

    async def get_many(
        self, keys: Sequence[str], cls: type[Any] | None = None
    ) -> list[Any | None]:
        async def action(backend: ICacheBackend) -> list[Any | None]:
            values = await backend.mget([self.key(k) for k in keys])
            return [None if v is None else _deserialize(v, cls) for v in values]

        if not keys:
            return []
        return await self._guard("mget", ",".join(keys), action, [None] * len(keys))

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern under the prefix."""

        async def action(backend: ICacheBackend) -> int:
            matches = await backend.keys(self.key(pattern))
            return await backend.delete(*matches) if matches else 0

        return await self._guard("delete_pattern", pattern, action, 0)

    # ── Notification read model ──────────────────────────────────

    async def cache_user_notifications(
        self,
        user_id: str,
        notifications: Sequence[InAppNotification],
        ttl: int = NOTIFICATION_LIST_TTL,
    ) -> bool:
        payload = [n.to_wire() for n in notifications]
        return await self.set(user_notifications_key(user_id), payload, ttl)

    async def get_user_notifications(self, user_id: str) -> list[InAppNotification] | None:
        raw = await self.get(user_notifications_key(user_id))
        if raw is None:
            return None
        try:
            return [InAppNotification.model_validate(item) for item in raw]
        except ValueError as e:
            logger.warning("Discarding unreadable cached notifications for %s: %s", user_id, e)
            return None

    async def cache_user_notification_stats(
        self,
        user_id: str,
        stats: NotificationStats,
        ttl: int = NOTIFICATION_STATS_TTL,
    ) -> bool:
        return await self.set(user_stats_key(user_id), stats, ttl)

    async def get_user_notification_stats(self, user_id: str) -> NotificationStats | None:
        return await self.get(user_stats_key(user_id), NotificationStats)

    async def cache_unread_count(
        self, user_id: str, count: int, ttl: int = UNREAD_COUNT_TTL
    ) -> bool:
        return await self.set(user_unread_key(user_id), count, ttl)

    async def get_unread_count(self, user_id: str) -> int | None:
        value = await self.get(user_unread_key(user_id))
        return int(value) if value is not None else None

    async def invalidate_user_notification_cache(self, user_id: str) -> None:
        """Drop list, stats and unread-count entries for one user."""
        await self.delete(
            user_notifications_key(user_id),
            user_stats_key(user_id),
            user_unread_key(user_id),
        )

    # ── Sessions and rate limiting ───────────────────────────────

    async def cache_user_session(
        self, session_id: str, data: dict[str, Any], ttl: int = SESSION_TTL
    ) -> bool:
        return await self.set(session_key(session_id), data, ttl)

    async def get_user_session(self, session_id: str) -> dict[str, Any] | None:
        value = await self.get(session_key(session_id))
        return value if isinstance(value, dict) else None

    async def invalidate_user_session(self, session_id: str) -> bool:
        return await self.delete(session_key(session_id))

    async def increment_rate_limit(
        self, identifier: str, window: int = RATE_LIMIT_WINDOW
    ) -> int:
        """Count one hit in the current window; the window starts on the first hit."""
        key = rate_limit_key(identifier)

        async def action(backend: ICacheBackend) -> int:
            count = await backend.incr(self.key(key))
            if count == 1:
                await backend.expire(self.key(key), window)
            return count

        return await self._guard("incr", key, action, 0)

    async def get_rate_limit(self, identifier: str) -> int:
        value = await self.get(rate_limit_key(identifier))
        return int(value) if value is not None else 0

    # ── Lifecycle ────────────────────────────────────────────────

    async def health_check(self) -> dict[str, Any]:
        if not self._enabled or self._backend is None:
            return {"connected": False, "enabled": False, "latency_ms": None}
        started = time.perf_counter()
        try:
            connected = await self._backend.ping()
        except Exception as e:  # noqa: BLE001
            logger.warning("Cache health check failed: %s", e)
            return {"connected": False, "enabled": True, "latency_ms": None, "error": str(e)}
        latency = round((time.perf_counter() - started) * 1000, 2)
        return {"connected": connected, "enabled": True, "latency_ms": latency}

    async def close(self) -> None:
        if self._backend is None:
            return
        try:
            await self._backend.close()
        except Exception as e:  # noqa: BLE001
            logger.warning("Cache close failed: %s", e)
