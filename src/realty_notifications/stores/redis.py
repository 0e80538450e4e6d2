"""Redis list adapter for the in-app notification inbox."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

from redis.exceptions import WatchError

from ..models import InAppNotification
from ..ports.stores import IInAppNotificationStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")
InboxEdit = Callable[[list[InAppNotification]], tuple[T, list[InAppNotification] | None]]

MAX_ITEMS = 100
INBOX_TTL = 30 * 24 * 3600


class RedisInAppNotificationStore(IInAppNotificationStore):
    """
    Keeps each user's inbox as a Redis list, newest first.

    Appends trim the list to ``max_items`` and refresh a 30-day expiry.
    Updates rewrite the whole list in a WATCH/MULTI transaction that is
    retried when the list changes underneath it.
    """

    def __init__(
        self,
        redis_client: Redis[Any],
        *,
        key_prefix: str = "realestate:inapp:",
        max_items: int = MAX_ITEMS,
        ttl: int = INBOX_TTL,
    ) -> None:
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._max_items = max_items
        self._ttl = ttl

    def _key(self, user_id: str) -> str:
        return f"{self._key_prefix}{user_id}"

    async def append(self, notification: InAppNotification) -> None:
        key = self._key(notification.user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.lpush(key, notification.model_dump_json(by_alias=True))
            pipe.ltrim(key, 0, self._max_items - 1)
            pipe.expire(key, self._ttl)
            await pipe.execute()

    async def list_for_user(self, user_id: str) -> list[InAppNotification]:
        return self._decode(user_id, await self._redis.lrange(self._key(user_id), 0, -1))

    async def mark_read(self, user_id: str, notification_id: str, read_at: datetime) -> bool:
        def edit(items: list[InAppNotification]) -> tuple[bool, list[InAppNotification] | None]:
            if not any(item.id == notification_id for item in items):
                return False, None
            return True, [
                item.mark_read(read_at) if item.id == notification_id else item for item in items
            ]

        return await self._update(user_id, edit)

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        def edit(items: list[InAppNotification]) -> tuple[int, list[InAppNotification] | None]:
            changed = sum(1 for item in items if not item.is_read)
            if not changed:
                return 0, None
            return changed, [item.mark_read(read_at) for item in items]

        return await self._update(user_id, edit)

    async def delete(self, user_id: str, notification_id: str) -> bool:
        def edit(items: list[InAppNotification]) -> tuple[bool, list[InAppNotification] | None]:
            remaining = [item for item in items if item.id != notification_id]
            if len(remaining) == len(items):
                return False, None
            return True, remaining

        return await self._update(user_id, edit)

    async def _update(self, user_id: str, edit: InboxEdit[T]) -> T:
        """
        Read, edit and rewrite the inbox under ``WATCH``.

        A concurrent ``append`` between the read and the rewrite aborts the
        transaction, and the edit is retried against the new list. ``edit``
        returns ``None`` as the new list when nothing needs writing.
        """
        key = self._key(user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    items = self._decode(user_id, await pipe.lrange(key, 0, -1))
                    result, updated = edit(items)
                    if updated is None:
                        return result
                    pipe.multi()
                    pipe.delete(key)
                    if updated:
                        pipe.rpush(key, *(item.model_dump_json(by_alias=True) for item in updated))
                        pipe.expire(key, self._ttl)
                    await pipe.execute()
                    return result
                except WatchError:
                    logger.debug("Inbox %s changed during update, retrying", key)

    @staticmethod
    def _decode(user_id: str, raw_items: list[Any]) -> list[InAppNotification]:
        notifications: list[InAppNotification] = []
        for raw in raw_items:
            try:
                notifications.append(InAppNotification.model_validate_json(raw))
            except ValueError as e:
                logger.warning("Skipping unreadable inbox entry for %s: %s", user_id, e)
        return notifications
