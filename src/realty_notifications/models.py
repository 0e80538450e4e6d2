"""Notification request, read-model and dispatch result types."""

from __future__ import annotations

import math
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .clock import ensure_utc
from .delivery import NotificationChannel
from .exceptions import ValidationError


class NotificationType(Enum):
    """Domain event kinds a notification can be raised for."""

    WELCOME = "WELCOME"
    PROPERTY_INQUIRY = "PROPERTY_INQUIRY"
    APPOINTMENT_SCHEDULED = "APPOINTMENT_SCHEDULED"
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    PROPERTY_APPROVED = "PROPERTY_APPROVED"
    PROPERTY_REJECTED = "PROPERTY_REJECTED"
    ACCOUNT_VERIFICATION = "ACCOUNT_VERIFICATION"
    ACCOUNT_VERIFIED = "ACCOUNT_VERIFIED"
    PASSWORD_RESET = "PASSWORD_RESET"
    NEW_REVIEW = "NEW_REVIEW"
    PRICE_CHANGE = "PRICE_CHANGE"
    FAVORITE_PROPERTY_UPDATE = "FAVORITE_PROPERTY_UPDATE"
    PROPERTY_MATCH = "PROPERTY_MATCH"
    NEW_MESSAGE = "NEW_MESSAGE"
    SECURITY_ALERT = "SECURITY_ALERT"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    PAYMENT_CONFIRMATION = "PAYMENT_CONFIRMATION"
    SUBSCRIPTION_EXPIRY = "SUBSCRIPTION_EXPIRY"


class NotificationPriority(Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def is_elevated(self) -> bool:
        return self in (NotificationPriority.HIGH, NotificationPriority.URGENT)


class WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _new_id() -> str:
    return str(uuid.uuid4())


class NotificationRequest(WireModel):
    """One logical notification to one user across a set of channels.

    Immutable once built; the scheduler resubmits the same instance when a
    deferred notification fires.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    channels: tuple[NotificationChannel, ...]
    priority: NotificationPriority = NotificationPriority.NORMAL
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    action_url: str | None = None
    image_url: str | None = None
    tags: tuple[str, ...] = ()
    category: str | None = None

    @field_validator("channels", mode="after")
    @classmethod
    def _dedupe_channels(
        cls, value: tuple[NotificationChannel, ...]
    ) -> tuple[NotificationChannel, ...]:
        return tuple(dict.fromkeys(value))

    @field_validator("scheduled_at", "expires_at", mode="after")
    @classmethod
    def _normalize_timestamps(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> NotificationRequest:
        """Build a request from a wire payload, raising our ``ValidationError``."""
        try:
            return cls.model_validate(dict(payload))
        except PydanticValidationError as exc:
            raise validation_error_from(exc) from exc


def validation_error_from(
    exc: PydanticValidationError, prefix: str | None = None
) -> ValidationError:
    """Fold pydantic errors into a ``{field: [messages]}`` ``ValidationError``."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "__root__"
        if prefix:
            location = f"{prefix}.{location}"
        errors.setdefault(location, []).append(error["msg"])
    return ValidationError(errors)


class InAppNotification(WireModel):
    """Lightweight copy of a notification kept for the user's inbox."""

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime
    read_at: datetime | None = None
    expires_at: datetime | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    action_url: str | None = None
    category: str | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def from_request(
        cls, request: NotificationRequest, created_at: datetime
    ) -> InAppNotification:
        return cls(
            id=request.id,
            user_id=request.user_id,
            type=request.type,
            title=request.title,
            message=request.message,
            data=dict(request.data),
            created_at=created_at,
            expires_at=request.expires_at,
            priority=request.priority,
            action_url=request.action_url,
            category=request.category,
            tags=request.tags,
        )

    def mark_read(self, read_at: datetime) -> InAppNotification:
        if self.is_read:
            return self
        return self.model_copy(update={"is_read": True, "read_at": read_at})


class NotificationStats(WireModel):
    total_count: int = 0
    unread_count: int = 0
    last_notification_at: datetime | None = None
    notifications_by_type: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def compute(cls, notifications: Sequence[InAppNotification]) -> NotificationStats:
        by_type: dict[str, int] = {}
        for notification in notifications:
            key = notification.type.value
            by_type[key] = by_type.get(key, 0) + 1
        return cls(
            total_count=len(notifications),
            unread_count=sum(1 for n in notifications if not n.is_read),
            last_notification_at=max(
                (n.created_at for n in notifications), default=None
            ),
            notifications_by_type=by_type,
        )


class Pagination(WireModel):
    page: int
    limit: int
    total: int
    pages: int


class NotificationPage(WireModel):
    notifications: tuple[InAppNotification, ...]
    pagination: Pagination

    @classmethod
    def paginate(
        cls, notifications: Sequence[InAppNotification], page: int, limit: int
    ) -> NotificationPage:
        total = len(notifications)
        start = (page - 1) * limit
        return cls(
            notifications=tuple(notifications[start : start + limit]),
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit) if total else 0,
            ),
        )


class DispatchStatus(Enum):
    """How far a request got through the dispatch pipeline."""

    COMPLETED = "COMPLETED"
    SUPPRESSED = "SUPPRESSED"
    DEFERRED = "DEFERRED"
    SCHEDULED = "SCHEDULED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Per-channel result of one dispatch."""

    channel: NotificationChannel
    success: bool
    error: str | None = None
    skipped: bool = False
    provider_id: str | None = None
    missing_variables: tuple[str, ...] = ()

    @classmethod
    def delivered(
        cls,
        channel: NotificationChannel,
        provider_id: str | None = None,
        missing_variables: Sequence[str] = (),
    ) -> DeliveryOutcome:
        return cls(
            channel=channel,
            success=True,
            provider_id=provider_id,
            missing_variables=tuple(missing_variables),
        )

    @classmethod
    def failure(cls, channel: NotificationChannel, error: str) -> DeliveryOutcome:
        return cls(channel=channel, success=False, error=error)

    @classmethod
    def skip(cls, channel: NotificationChannel, reason: str | None = None) -> DeliveryOutcome:
        return cls(channel=channel, success=False, error=reason, skipped=True)


@dataclass(frozen=True)
class DispatchResult:
    """Aggregated outcome of ``NotificationOrchestrator.send_notification``."""

    notification_id: str
    status: DispatchStatus
    outcomes: dict[NotificationChannel, DeliveryOutcome] = field(default_factory=dict)
    fire_at: datetime | None = None

    @property
    def dispatched(self) -> bool:
        return self.status is DispatchStatus.COMPLETED

    def succeeded(self, channel: NotificationChannel) -> bool:
        outcome = self.outcomes.get(channel)
        return outcome is not None and outcome.success

    def channel_summary(self) -> dict[str, bool]:
        """Per-channel booleans keyed the way API consumers expect."""
        return {
            channel.result_key: self.succeeded(channel)
            for channel in NotificationChannel
        }

    def errors(self) -> dict[str, str]:
        return {
            channel.result_key: outcome.error
            for channel, outcome in self.outcomes.items()
            if outcome.error and not outcome.skipped
        }


class PushKeys(WireModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscription(WireModel):
    """A browser/device web push subscription owned by one user."""

    user_id: str
    endpoint: str = Field(min_length=1)
    keys: PushKeys
    user_agent: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    def subscription_info(self) -> dict[str, Any]:
        """The shape web push libraries expect."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.keys.p256dh, "auth": self.keys.auth},
        }
