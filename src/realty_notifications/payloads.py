"""Typed ``data`` payloads per notification type.

Each templated notification type has a pydantic model describing the keys
its templates read. Requests are checked against the model on arrival so a
malformed payload fails fast instead of rendering blank placeholders.
Unknown keys are kept so callers can pass extra context through.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .models import NotificationType, validation_error_from

# Variables the orchestrator adds to every render context, independent of payload.
CONTEXT_VARIABLES: frozenset[str] = frozenset(
    {
        "appName",
        "platformUrl",
        "loginUrl",
        "dashboardUrl",
        "firstName",
        "lastName",
        "userName",
        "email",
        "title",
        "message",
        "actionUrl",
    }
)


class NotificationPayload(BaseModel):
    """Base payload: accepts any extra keys, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WelcomePayload(NotificationPayload):
    login_url: str | None = None


class AccountVerificationPayload(NotificationPayload):
    verification_url: str = Field(min_length=1)
    expires_in: str | None = None


class PasswordResetPayload(NotificationPayload):
    reset_url: str = Field(min_length=1)
    expires_in: str | None = None


class PropertyInquiryPayload(NotificationPayload):
    property_id: str | None = None
    property_title: str | None = None
    property_url: str | None = None
    inquirer_name: str | None = None
    inquirer_email: str | None = None
    inquirer_phone: str | None = None
    inquiry_message: str | None = None
    inquiry_url: str | None = None


class AppointmentPayload(NotificationPayload):
    appointment_id: str | None = None
    property_title: str | None = None
    property_address: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    agent_name: str | None = None
    client_name: str | None = None
    time_until: str | None = None
    appointment_url: str | None = None


class PriceChangePayload(NotificationPayload):
    property_id: str | None = None
    property_title: str | None = None
    property_url: str | None = None
    old_price: float | None = Field(default=None, ge=0)
    new_price: float = Field(ge=0)
    change_type: str | None = None


class PropertyReviewPayload(NotificationPayload):
    property_id: str | None = None
    property_title: str | None = None
    property_url: str | None = None
    reason: str | None = None


PAYLOAD_MODELS: dict[NotificationType, type[NotificationPayload]] = {
    NotificationType.WELCOME: WelcomePayload,
    NotificationType.ACCOUNT_VERIFICATION: AccountVerificationPayload,
    NotificationType.ACCOUNT_VERIFIED: NotificationPayload,
    NotificationType.PASSWORD_RESET: PasswordResetPayload,
    NotificationType.PROPERTY_INQUIRY: PropertyInquiryPayload,
    NotificationType.APPOINTMENT_SCHEDULED: AppointmentPayload,
    NotificationType.APPOINTMENT_REMINDER: AppointmentPayload,
    NotificationType.APPOINTMENT_CANCELLED: AppointmentPayload,
    NotificationType.PRICE_CHANGE: PriceChangePayload,
    NotificationType.PROPERTY_APPROVED: PropertyReviewPayload,
    NotificationType.PROPERTY_REJECTED: PropertyReviewPayload,
}


def payload_model_for(notification_type: NotificationType) -> type[NotificationPayload]:
    return PAYLOAD_MODELS.get(notification_type, NotificationPayload)


def validate_payload(
    notification_type: NotificationType, data: Mapping[str, Any]
) -> NotificationPayload:
    """Validate ``data`` for ``notification_type``.

    Raises:
        ValidationError: with field paths prefixed by ``data``.
    """
    model = payload_model_for(notification_type)
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise validation_error_from(exc, prefix="data") from exc


def known_variables(notification_type: NotificationType) -> frozenset[str]:
    """Template variables a request of this type can satisfy."""
    model = payload_model_for(notification_type)
    aliases = {info.alias or name for name, info in model.model_fields.items()}
    return CONTEXT_VARIABLES | aliases
