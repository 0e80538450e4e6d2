"""Per-user webhook provider with HMAC signature."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from ..channel import RecipientInfo
from ..correlation import get_correlation_id
from ..delivery import DeliveryRecord, NotificationChannel, RenderedNotification
from ..ports.sender import IChannelProvider
from ..sanitization import MetadataSanitizer, default_sanitizer

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


class WebhookProvider(IChannelProvider):
    """
    HTTP POST to the recipient's own webhook URL.

    A recipient without a URL is a silent no-op (``SKIPPED``). The body is
    signed with HMAC-SHA256 over the exact bytes sent, using the
    recipient's secret or, failing that, the service-wide secret.
    Credential-like keys in ``data`` are masked before sending.
    """

    channel = NotificationChannel.WEBHOOK

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "realty-notifications/0.1.0",
        secret: str | None = None,
        sanitizer: MetadataSanitizer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.secret = secret
        self._sanitizer = sanitizer or default_sanitizer
        self._transport = transport

    def is_ready(self) -> bool:
        return True

    async def send(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        url = recipient.webhook_url
        if not url:
            logger.debug(f"No webhook configured for user {recipient.user_id}")
            return DeliveryRecord.skipped(recipient.user_id, self.channel, reason="No webhook URL")

        meta = metadata or {}
        payload = self._build_payload(recipient, content, meta)
        body = json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str)

        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            "X-Notification-ID": str(meta.get("notification_id") or ""),
            "X-Notification-Type": str(meta.get("notification_type") or ""),
            "X-Correlation-ID": get_correlation_id() or "",
        }
        secret = recipient.webhook_secret or self.secret
        if secret:
            headers[SIGNATURE_HEADER] = self.calculate_signature(body, secret)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, content=body.encode("utf-8"), headers=headers)
                response.raise_for_status()

            logger.info(f"Webhook sent successfully to {url}")
            return DeliveryRecord.sent(
                url, self.channel, provider_id=response.headers.get("X-Request-ID")
            )

        except httpx.HTTPStatusError as e:
            logger.error(f"Webhook HTTP error: {e.response.status_code} - {e.response.text}")
            return DeliveryRecord.failed(url, self.channel, error=f"HTTP {e.response.status_code}")
        except Exception as e:
            logger.error(f"Failed to send webhook to {url}: {str(e)}")
            return DeliveryRecord.failed(url, self.channel, error=str(e))

    def _build_payload(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        meta: Mapping[str, object],
    ) -> dict[str, Any]:
        return {
            "id": meta.get("notification_id"),
            "type": meta.get("notification_type"),
            "userId": recipient.user_id,
            "title": meta.get("title") or content.subject or "",
            "message": meta.get("message") or content.body_text,
            "data": self._sanitizer.sanitize(dict(content.data)),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def calculate_signature(payload: str, secret: str) -> str:
        digest = hmac.new(
            key=secret.encode("utf-8"),
            msg=payload.encode("utf-8"),
            digestmod=hashlib.sha256,
        ).hexdigest()
        return f"sha256={digest}"

    @staticmethod
    def verify_signature(payload: str, signature: str, secret: str) -> bool:
        """
        Verify webhook signature using constant-time comparison.

        Use this in webhook receivers to authenticate incoming webhooks.
        """
        expected = WebhookProvider.calculate_signature(payload, secret)
        return hmac.compare_digest(expected, signature)
