"""Domain events raised by the listing platform and their notification mapping."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .correlation import correlation_scope
from .delivery import NotificationChannel
from .models import DispatchResult, NotificationPriority, NotificationRequest, NotificationType

logger = logging.getLogger(__name__)

SendFn = Callable[[NotificationRequest], Awaitable[DispatchResult]]


class DomainEvent(BaseModel):
    """Base class for events published by the platform's domain services.

    Events are immutable. ``to_notification_context`` returns the camelCase
    variables templates are rendered with.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None

    def to_notification_context(self) -> dict[str, Any]:
        return {}


class PropertyInquiryReceived(DomainEvent):
    agent_id: str
    property_id: str
    property_title: str
    inquirer_name: str | None = None
    inquirer_email: str | None = None
    inquirer_phone: str | None = None
    inquiry_message: str | None = None

    def to_notification_context(self) -> dict[str, Any]:
        context = {
            "propertyId": self.property_id,
            "propertyTitle": self.property_title,
            "inquirerName": self.inquirer_name,
            "inquirerEmail": self.inquirer_email,
            "inquirerPhone": self.inquirer_phone,
            "inquiryMessage": self.inquiry_message,
        }
        return {k: v for k, v in context.items() if v is not None}


class UserRegistered(DomainEvent):
    user_id: str
    login_url: str | None = None

    def to_notification_context(self) -> dict[str, Any]:
        return {"loginUrl": self.login_url} if self.login_url else {}


class UserVerified(DomainEvent):
    user_id: str


class PropertyApproved(DomainEvent):
    agent_id: str
    property_id: str
    property_title: str
    property_url: str | None = None

    def to_notification_context(self) -> dict[str, Any]:
        context = {
            "propertyId": self.property_id,
            "propertyTitle": self.property_title,
            "propertyUrl": self.property_url,
        }
        return {k: v for k, v in context.items() if v is not None}


class PropertyRejected(PropertyApproved):
    reason: str = "Listing details need updates"

    def to_notification_context(self) -> dict[str, Any]:
        return {**super().to_notification_context(), "reason": self.reason}


class AppointmentScheduled(DomainEvent):
    appointment_id: str
    agent_id: str
    client_id: str
    property_title: str
    appointment_date: str
    appointment_time: str | None = None
    property_address: str | None = None

    def to_notification_context(self) -> dict[str, Any]:
        context = {
            "appointmentId": self.appointment_id,
            "propertyTitle": self.property_title,
            "appointmentDate": self.appointment_date,
            "appointmentTime": self.appointment_time,
            "propertyAddress": self.property_address,
        }
        return {k: v for k, v in context.items() if v is not None}


class AppointmentReminderDue(DomainEvent):
    user_id: str
    appointment_id: str
    property_title: str
    time_until: str

    def to_notification_context(self) -> dict[str, Any]:
        return {
            "appointmentId": self.appointment_id,
            "propertyTitle": self.property_title,
            "timeUntil": self.time_until,
        }


# ── Event → request mapping ─────────────────────────────────────

RequestBuilder = Callable[[Any], list[NotificationRequest]]

_EMAIL = NotificationChannel.EMAIL
_SMS = NotificationChannel.SMS
_PUSH = NotificationChannel.PUSH
_IN_APP = NotificationChannel.IN_APP


def _inquiry_requests(event: PropertyInquiryReceived) -> list[NotificationRequest]:
    return [
        NotificationRequest(
            user_id=event.agent_id,
            type=NotificationType.PROPERTY_INQUIRY,
            title="New Property Inquiry",
            message=f"You have a new inquiry for {event.property_title}",
            data=event.to_notification_context(),
            channels=(_EMAIL, _IN_APP, _PUSH),
            priority=NotificationPriority.HIGH,
        )
    ]


def _welcome_requests(event: UserRegistered) -> list[NotificationRequest]:
    return [
        NotificationRequest(
            user_id=event.user_id,
            type=NotificationType.WELCOME,
            title="Welcome to RealEstate Platform!",
            message="Thank you for joining us. Start exploring properties now!",
            data=event.to_notification_context(),
            channels=(_EMAIL, _IN_APP),
        )
    ]


def _verified_requests(event: UserVerified) -> list[NotificationRequest]:
    return [
        NotificationRequest(
            user_id=event.user_id,
            type=NotificationType.ACCOUNT_VERIFIED,
            title="Account Verified",
            message="Your account has been successfully verified. You can now access all features!",
            channels=(_EMAIL, _IN_APP),
        )
    ]


def _approved_requests(event: PropertyApproved) -> list[NotificationRequest]:
    return [
        NotificationRequest(
            user_id=event.agent_id,
            type=NotificationType.PROPERTY_APPROVED,
            title="Property Approved",
            message=f'Your property "{event.property_title}" has been approved and is now live!',
            data=event.to_notification_context(),
            channels=(_EMAIL, _IN_APP, _PUSH),
            action_url=event.property_url,
        )
    ]


def _rejected_requests(event: PropertyRejected) -> list[NotificationRequest]:
    return [
        NotificationRequest(
            user_id=event.agent_id,
            type=NotificationType.PROPERTY_REJECTED,
            title="Property Needs Review",
            message=f'Your property "{event.property_title}" needs some updates before approval.',
            data=event.to_notification_context(),
            channels=(_EMAIL, _IN_APP),
        )
    ]


def _appointment_requests(event: AppointmentScheduled) -> list[NotificationRequest]:
    context = event.to_notification_context()
    return [
        NotificationRequest(
            user_id=event.agent_id,
            type=NotificationType.APPOINTMENT_SCHEDULED,
            title="New Appointment Scheduled",
            message=(
                f"Appointment scheduled for {event.property_title} on {event.appointment_date}"
            ),
            data=context,
            channels=(_EMAIL, _SMS, _IN_APP),
            priority=NotificationPriority.HIGH,
        ),
        NotificationRequest(
            user_id=event.client_id,
            type=NotificationType.APPOINTMENT_SCHEDULED,
            title="Appointment Confirmed",
            message=(
                f"Your appointment for {event.property_title} is confirmed "
                f"for {event.appointment_date}"
            ),
            data=context,
            channels=(_EMAIL, _IN_APP),
        ),
    ]


def _reminder_requests(event: AppointmentReminderDue) -> list[NotificationRequest]:
    return [
        NotificationRequest(
            user_id=event.user_id,
            type=NotificationType.APPOINTMENT_REMINDER,
            title="Appointment Reminder",
            message=(
                f"Reminder: You have an appointment for {event.property_title} "
                f"in {event.time_until}"
            ),
            data=event.to_notification_context(),
            channels=(_SMS, _PUSH),
            priority=NotificationPriority.HIGH,
        )
    ]


DEFAULT_BUILDERS: dict[type[DomainEvent], RequestBuilder] = {
    PropertyInquiryReceived: _inquiry_requests,
    UserRegistered: _welcome_requests,
    UserVerified: _verified_requests,
    PropertyApproved: _approved_requests,
    PropertyRejected: _rejected_requests,
    AppointmentScheduled: _appointment_requests,
    AppointmentReminderDue: _reminder_requests,
}


class NotificationEventHandler:
    """
    Bridges domain events to the orchestrator.

    Each event type maps to one or more requests, which are sent one after
    another; a failure for one recipient is logged and does not stop the rest.
    """

    def __init__(
        self,
        send: SendFn,
        builders: dict[type[DomainEvent], RequestBuilder] | None = None,
    ):
        self._send = send
        self._builders = dict(DEFAULT_BUILDERS if builders is None else builders)

    def register(self, event_type: type[DomainEvent], builder: RequestBuilder) -> None:
        self._builders[event_type] = builder

    def handles(self, event_type: type[DomainEvent]) -> bool:
        return event_type in self._builders

    async def handle(self, event: DomainEvent) -> list[DispatchResult]:
        builder = self._builders.get(type(event))
        if builder is None:
            logger.debug(f"No notification mapping for event {type(event).__name__}")
            return []

        results: list[DispatchResult] = []
        with correlation_scope(event.correlation_id):
            for request in builder(event):
                try:
                    results.append(await self._send(request))
                except Exception as e:
                    logger.error(
                        f"Failed to notify user {request.user_id} for "
                        f"{type(event).__name__}: {str(e)}",
                        exc_info=True,
                    )
        return results
