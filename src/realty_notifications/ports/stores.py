"""Persistence ports owned by collaborators outside the notification engine."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from ..channel import RecipientInfo
from ..models import InAppNotification, PushSubscription
from ..preferences import UserPreferences


@runtime_checkable
class IUserPreferenceStore(Protocol):
    """Read/write access to per-user notification preferences."""

    async def get(self, user_id: str) -> UserPreferences | None:
        """Return stored preferences, or ``None`` when the user has none."""
        ...

    async def save(self, preferences: UserPreferences) -> None: ...


@runtime_checkable
class IRecipientDirectory(Protocol):
    """Resolves a user id to contact details."""

    async def get(self, user_id: str) -> RecipientInfo | None: ...


@runtime_checkable
class IPushSubscriptionStore(Protocol):
    """Per-device web push subscriptions."""

    async def add(self, subscription: PushSubscription) -> None:
        """Store a subscription, replacing one with the same endpoint."""
        ...

    async def remove(self, user_id: str, endpoint: str) -> bool: ...

    async def list_for_user(self, user_id: str) -> list[PushSubscription]: ...


@runtime_checkable
class IInAppNotificationStore(Protocol):
    """Source of truth for the in-app inbox; lists are newest first."""

    async def append(self, notification: InAppNotification) -> None: ...

    async def list_for_user(self, user_id: str) -> list[InAppNotification]: ...

    async def mark_read(
        self, user_id: str, notification_id: str, read_at: datetime
    ) -> bool:
        """Mark one notification read; ``False`` if it does not exist."""
        ...

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        """Mark every unread notification read and return how many changed."""
        ...

    async def delete(self, user_id: str, notification_id: str) -> bool: ...
