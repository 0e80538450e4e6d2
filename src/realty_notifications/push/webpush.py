"""Web push provider using pywebpush and VAPID."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from ..channel import RecipientInfo
from ..delivery import DeliveryRecord, NotificationChannel, RenderedNotification
from ..models import PushSubscription
from ..ports.sender import IChannelProvider
from ..ports.stores import IPushSubscriptionStore

logger = logging.getLogger(__name__)

# Push services answer these for subscriptions that will never work again.
GONE_STATUS_CODES = frozenset({404, 410})

DEFAULT_ICON = "/icons/notification-icon.png"
DEFAULT_BADGE = "/icons/badge-icon.png"


class WebPushProvider(IChannelProvider):
    """
    Sends to every active device subscription of the recipient.

    Accepted when at least one device accepted the message. Devices whose
    push service reports the subscription gone are unsubscribed, not
    retried.
    """

    channel = NotificationChannel.PUSH

    def __init__(
        self,
        subscriptions: IPushSubscriptionStore,
        vapid_public_key: str | None,
        vapid_private_key: str | None,
        vapid_subject: str = "mailto:admin@realestate.com",
        ttl: int = 86400,
        timeout: float = 10.0,
    ):
        self._subscriptions = subscriptions
        self.vapid_public_key = vapid_public_key
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl
        self.timeout = timeout

    def is_ready(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    async def send(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        if not self.is_ready():
            return DeliveryRecord.failed(recipient.user_id, self.channel, error="VAPID keys not configured")

        subscriptions = await self._subscriptions.list_for_user(recipient.user_id)
        if not subscriptions:
            logger.debug(f"No push subscriptions for user {recipient.user_id}")
            return DeliveryRecord.skipped(
                recipient.user_id, self.channel, reason="No push subscriptions"
            )

        meta = metadata or {}
        payload = json.dumps(self._build_payload(content, meta), default=str)
        headers = {"Urgency": "high" if meta.get("elevated") else "normal"}

        results = await asyncio.gather(
            *(self._send_to_device(sub, payload, headers) for sub in subscriptions),
            return_exceptions=True,
        )
        delivered = sum(1 for r in results if r is True)
        errors = [str(r) for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(
                f"Push delivery to user {recipient.user_id} failed on "
                f"{len(errors)} device(s): {errors}"
            )

        if delivered:
            logger.info(
                f"Push sent to {delivered}/{len(subscriptions)} devices of user {recipient.user_id}"
            )
            return DeliveryRecord.sent(
                recipient.user_id, self.channel, provider_id=f"{delivered}/{len(subscriptions)}"
            )
        return DeliveryRecord.failed(
            recipient.user_id,
            self.channel,
            error="; ".join(errors) or "No device accepted the notification",
        )

    async def _send_to_device(
        self, subscription: PushSubscription, payload: str, headers: dict[str, str]
    ) -> bool:
        # Lazy import of pywebpush
        try:
            from pywebpush import WebPushException, webpush
        except ImportError as e:
            raise ImportError(
                "pywebpush is required for WebPushProvider. "
                "Install with: pip install 'realty-notifications[push]'"
            ) from e

        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription.subscription_info(),
                data=payload,
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
                headers=dict(headers),
                timeout=self.timeout,
            )
            return True
        except WebPushException as e:
            status = getattr(e.response, "status_code", None)
            if status in GONE_STATUS_CODES:
                await self._subscriptions.remove(subscription.user_id, subscription.endpoint)
                logger.info(
                    f"Removed expired push subscription of user {subscription.user_id} "
                    f"(HTTP {status})"
                )
                return False
            raise

    def _build_payload(
        self, content: RenderedNotification, meta: Mapping[str, object]
    ) -> dict[str, Any]:
        elevated = bool(meta.get("elevated"))
        data = dict(content.data)
        data.update(
            {
                "notificationId": meta.get("notification_id"),
                "type": meta.get("notification_type"),
                "url": meta.get("action_url") or "/notifications",
            }
        )
        payload: dict[str, Any] = {
            "title": content.subject or "",
            "body": content.body_text,
            "icon": DEFAULT_ICON,
            "badge": DEFAULT_BADGE,
            "data": data,
            "tag": meta.get("notification_type"),
            "requireInteraction": elevated,
            "actions": [
                {"action": "view", "title": "View"},
                {"action": "dismiss", "title": "Dismiss"},
            ],
        }
        if meta.get("image_url"):
            payload["image"] = meta["image_url"]
        return payload
