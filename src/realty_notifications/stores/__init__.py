"""Store adapters for preferences, recipients, push subscriptions and the inbox."""

from __future__ import annotations

from .memory import (
    InMemoryInAppNotificationStore,
    InMemoryPreferenceStore,
    InMemoryPushSubscriptionStore,
    InMemoryRecipientDirectory,
)
from .redis import RedisInAppNotificationStore

__all__ = [
    "InMemoryInAppNotificationStore",
    "InMemoryPreferenceStore",
    "InMemoryPushSubscriptionStore",
    "InMemoryRecipientDirectory",
    "RedisInAppNotificationStore",
]
