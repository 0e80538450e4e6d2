"""In-memory store adapters for tests and single-process deployments."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from ..channel import RecipientInfo
from ..models import InAppNotification, PushSubscription
from ..ports.stores import (
    IInAppNotificationStore,
    IPushSubscriptionStore,
    IRecipientDirectory,
    IUserPreferenceStore,
)
from ..preferences import UserPreferences


class InMemoryPreferenceStore(IUserPreferenceStore):
    def __init__(self, preferences: Iterable[UserPreferences] = ()) -> None:
        self._preferences = {p.user_id: p for p in preferences}

    async def get(self, user_id: str) -> UserPreferences | None:
        return self._preferences.get(user_id)

    async def save(self, preferences: UserPreferences) -> None:
        self._preferences[preferences.user_id] = preferences


class InMemoryRecipientDirectory(IRecipientDirectory):
    def __init__(self, recipients: Iterable[RecipientInfo] = ()) -> None:
        self._recipients = {r.user_id: r for r in recipients}

    def add(self, recipient: RecipientInfo) -> None:
        self._recipients[recipient.user_id] = recipient

    async def get(self, user_id: str) -> RecipientInfo | None:
        return self._recipients.get(user_id)


class InMemoryPushSubscriptionStore(IPushSubscriptionStore):
    def __init__(self) -> None:
        self._subscriptions: dict[str, dict[str, PushSubscription]] = {}

    async def add(self, subscription: PushSubscription) -> None:
        self._subscriptions.setdefault(subscription.user_id, {})[
            subscription.endpoint
        ] = subscription

    async def remove(self, user_id: str, endpoint: str) -> bool:
        return self._subscriptions.get(user_id, {}).pop(endpoint, None) is not None

    async def list_for_user(self, user_id: str) -> list[PushSubscription]:
        return [s for s in self._subscriptions.get(user_id, {}).values() if s.is_active]


class InMemoryInAppNotificationStore(IInAppNotificationStore):
    """Per-user newest-first lists capped at ``max_per_user`` entries."""

    def __init__(self, max_per_user: int = 100) -> None:
        self._max_per_user = max_per_user
        self._items: dict[str, list[InAppNotification]] = {}

    async def append(self, notification: InAppNotification) -> None:
        items = self._items.setdefault(notification.user_id, [])
        items.insert(0, notification)
        del items[self._max_per_user :]

    async def list_for_user(self, user_id: str) -> list[InAppNotification]:
        return list(self._items.get(user_id, []))

    async def mark_read(self, user_id: str, notification_id: str, read_at: datetime) -> bool:
        items = self._items.get(user_id, [])
        for index, item in enumerate(items):
            if item.id == notification_id:
                items[index] = item.mark_read(read_at)
                return True
        return False

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        items = self._items.get(user_id, [])
        changed = 0
        for index, item in enumerate(items):
            if not item.is_read:
                items[index] = item.mark_read(read_at)
                changed += 1
        return changed

    async def delete(self, user_id: str, notification_id: str) -> bool:
        items = self._items.get(user_id, [])
        remaining = [item for item in items if item.id != notification_id]
        self._items[user_id] = remaining
        return len(remaining) != len(items)
