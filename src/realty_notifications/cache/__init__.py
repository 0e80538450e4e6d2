"""Read-through cache and its backends."""

from __future__ import annotations

from .memory import InMemoryCacheBackend
from .redis import RedisCacheBackend
from .service import (
    NOTIFICATION_LIST_TTL,
    NOTIFICATION_STATS_TTL,
    SESSION_TTL,
    UNREAD_COUNT_TTL,
    NotificationCache,
    scheduled_key,
    user_notifications_key,
    user_stats_key,
    user_unread_key,
)

__all__ = [
    "NOTIFICATION_LIST_TTL",
    "NOTIFICATION_STATS_TTL",
    "SESSION_TTL",
    "UNREAD_COUNT_TTL",
    "InMemoryCacheBackend",
    "NotificationCache",
    "RedisCacheBackend",
    "scheduled_key",
    "user_notifications_key",
    "user_stats_key",
    "user_unread_key",
]
