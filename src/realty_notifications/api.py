"""JSON-shaped entry points for the HTTP routing layer.

Every method takes already-decoded request data and returns a dict ready to
be serialized. ``ValidationError`` propagates so the router can answer with
a 4xx; everything else about delivery is reported in the returned body.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .bulk import BulkSender
from .exceptions import ValidationError
from .models import (
    DispatchStatus,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
    validation_error_from,
)
from .orchestrator import NotificationOrchestrator
from .ports.stores import IUserPreferenceStore
from .preferences import UserPreferences
from .push.subscriptions import PushSubscriptionService

logger = logging.getLogger(__name__)

MAX_BULK_SIZE = 1000


class NotificationApi:
    def __init__(
        self,
        orchestrator: NotificationOrchestrator,
        bulk: BulkSender,
        preferences: IUserPreferenceStore,
        subscriptions: PushSubscriptionService,
        max_bulk_size: int = MAX_BULK_SIZE,
    ):
        self._orchestrator = orchestrator
        self._bulk = bulk
        self._preferences = preferences
        self._subscriptions = subscriptions
        self._max_bulk_size = max_bulk_size

    # ── Sending ──────────────────────────────────────────────────

    async def create_notification(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Send now, or schedule when ``scheduledAt`` lies in the future."""
        request = NotificationRequest.from_payload(body)
        result = await self._orchestrator.send_notification(request)

        if result.status is DispatchStatus.SCHEDULED:
            return {
                "success": True,
                "message": "Notification scheduled successfully",
                "data": {
                    "notificationId": request.id,
                    "scheduledAt": result.fire_at.isoformat() if result.fire_at else None,
                },
            }

        data: dict[str, Any] = {
            "notification": request.to_wire(),
            "status": result.status.value,
            "channels": result.channel_summary(),
        }
        if result.fire_at is not None:
            data["deferredUntil"] = result.fire_at.isoformat()
        errors = result.errors()
        if errors:
            data["errors"] = errors
        return {"success": True, "message": "Notification processed", "data": data}

    async def send_bulk(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Send ``{notifications: [...], batchName?, scheduledAt?}`` in chunks."""
        items = body.get("notifications") or []
        if not items:
            raise ValidationError({"notifications": ["No notifications provided"]})
        if len(items) > self._max_bulk_size:
            raise ValidationError(
                {
                    "notifications": [
                        f"Maximum {self._max_bulk_size} notifications allowed per batch"
                    ]
                }
            )

        batch_name = body.get("batchName")
        scheduled_at = body.get("scheduledAt")
        requests: list[NotificationRequest] = []
        errors: dict[str, list[str]] = {}
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                errors[f"notifications.{index}"] = ["Must be an object"]
                continue
            payload = dict(item)
            if scheduled_at and "scheduledAt" not in payload:
                payload["scheduledAt"] = scheduled_at
            if batch_name:
                metadata = payload.get("metadata") or {}
                if not isinstance(metadata, Mapping):
                    errors[f"notifications.{index}.metadata"] = ["Must be an object"]
                    continue
                payload["metadata"] = {**metadata, "batchName": batch_name}
            try:
                requests.append(NotificationRequest.from_payload(payload))
            except ValidationError as exc:
                for field, messages in exc.errors.items():
                    errors.setdefault(f"notifications.{index}.{field}", []).extend(messages)
        if errors:
            raise ValidationError(errors)

        result = await self._bulk.send_bulk(requests)
        logger.info(f"Bulk batch {batch_name or '<unnamed>'} processed {result.total} requests")
        return {
            "success": True,
            "message": "Bulk notifications processed",
            "data": {
                "count": result.total,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "batchName": batch_name,
            },
        }

    async def send_test_notification(
        self,
        user_id: str,
        channel: str,
        notification_type: str = NotificationType.SYSTEM_MAINTENANCE.value,
        test_data: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        request = NotificationRequest.from_payload(
            {
                "userId": user_id,
                "type": notification_type,
                "title": "Test Notification",
                "message": "This is a test notification to verify your settings.",
                "data": dict(test_data or {"test": True}),
                "channels": [channel],
                "priority": NotificationPriority.LOW.value,
                "metadata": {"isTest": True},
            }
        )
        result = await self._orchestrator.send_notification(request)
        return {
            "success": True,
            "data": {"status": result.status.value, "channels": result.channel_summary()},
        }

    async def cancel_scheduled(self, notification_id: str) -> dict[str, Any]:
        cancelled = await self._orchestrator.cancel_scheduled(notification_id)
        return {
            "success": cancelled,
            "message": "Scheduled notification cancelled"
            if cancelled
            else "Scheduled notification not found",
        }

    # ── Inbox ────────────────────────────────────────────────────

    async def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
        notification_type: str | None = None,
    ) -> dict[str, Any]:
        type_filter = _parse_type(notification_type) if notification_type else None
        result = await self._orchestrator.get_notifications(
            user_id,
            page,
            limit,
            unread_only=unread_only,
            notification_type=type_filter,
        )
        return {"success": True, "data": result.to_wire()}

    async def get_stats(self, user_id: str) -> dict[str, Any]:
        stats = await self._orchestrator.get_stats(user_id)
        return {"success": True, "data": stats.to_wire()}

    async def mark_as_read(self, user_id: str, notification_id: str) -> dict[str, Any]:
        updated = await self._orchestrator.mark_as_read(user_id, notification_id)
        return {
            "success": updated,
            "message": "Notification marked as read" if updated else "Notification not found",
        }

    async def mark_all_as_read(self, user_id: str) -> dict[str, Any]:
        count = await self._orchestrator.mark_all_as_read(user_id)
        return {
            "success": True,
            "message": f"{count} notifications marked as read",
            "data": {"count": count},
        }

    async def delete_notification(self, user_id: str, notification_id: str) -> dict[str, Any]:
        deleted = await self._orchestrator.delete_notification(user_id, notification_id)
        return {
            "success": deleted,
            "message": "Notification deleted" if deleted else "Notification not found",
        }

    # ── Preferences ──────────────────────────────────────────────

    async def get_preferences(self, user_id: str) -> dict[str, Any]:
        prefs = await self._preferences.get(user_id) or UserPreferences.defaults(user_id)
        return {"success": True, "data": prefs.to_wire()}

    async def update_preferences(
        self, user_id: str, changes: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Merge ``changes`` (camelCase) into the stored preferences."""
        current = await self._preferences.get(user_id) or UserPreferences.defaults(user_id)
        merged = {**current.to_wire(), **dict(changes), "userId": user_id}
        try:
            updated = UserPreferences.model_validate(merged)
        except PydanticValidationError as exc:
            raise validation_error_from(exc) from exc
        await self._preferences.save(updated)
        logger.info(f"Notification preferences updated for user {user_id}")
        return {
            "success": True,
            "message": "Notification preferences updated successfully",
            "data": updated.to_wire(),
        }

    # ── Push ─────────────────────────────────────────────────────

    async def subscribe_push(
        self,
        user_id: str,
        subscription: Mapping[str, Any],
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        record = await self._subscriptions.subscribe(user_id, subscription, user_agent)
        return {
            "success": True,
            "message": "Push notification subscription created",
            "data": {"endpoint": record.endpoint},
        }

    async def unsubscribe_push(self, user_id: str, endpoint: str) -> dict[str, Any]:
        if not endpoint:
            raise ValidationError({"endpoint": ["is required"]})
        removed = await self._subscriptions.unsubscribe(user_id, endpoint)
        return {
            "success": removed,
            "message": "Push notification subscription removed"
            if removed
            else "Push notification subscription not found",
        }

    def vapid_public_key(self) -> dict[str, Any]:
        key = self._subscriptions.vapid_public_key
        return {"success": key is not None, "data": {"publicKey": key}}


def _parse_type(value: str) -> NotificationType:
    try:
        return NotificationType(value)
    except ValueError:
        raise ValidationError({"type": [f"unknown notification type {value!r}"]}) from None

