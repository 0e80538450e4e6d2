"""Delivery tracking types and channel enum."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from html import unescape
from typing import Any

_TAG_RE = re.compile(r"<[^>]*>")
_BLOCK_BREAK_RE = re.compile(r"<\s*(br|/p|/div|/h[1-6]|/li|/tr)\s*/?\s*>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<(style|script)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
_SPACES_RE = re.compile(r"[ \t]+")


class NotificationChannel(Enum):
    """Supported notification channels."""

    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    IN_APP = "IN_APP"
    WEBHOOK = "WEBHOOK"

    @property
    def preference_field(self) -> str:
        """Name of the matching toggle on ``UserPreferences``."""
        return self.value.lower()

    @property
    def result_key(self) -> str:
        """Key used for this channel in dispatch result summaries."""
        if self is NotificationChannel.IN_APP:
            return "database"
        return self.value.lower()


class DeliveryStatus(Enum):
    """Delivery status outcomes."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DeliveryRecord:
    """Immutable record of a notification delivery attempt."""

    recipient: str
    channel: NotificationChannel
    status: DeliveryStatus
    provider_id: str | None = None
    sent_at: datetime | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.sent_at is None:
            object.__setattr__(self, "sent_at", datetime.now(timezone.utc))

    @property
    def accepted(self) -> bool:
        return self.status is DeliveryStatus.SENT

    @classmethod
    def sent(
        cls,
        recipient: str,
        channel: NotificationChannel,
        provider_id: str | None = None,
    ) -> DeliveryRecord:
        """Create a successful delivery record."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.SENT,
            provider_id=provider_id,
        )

    @classmethod
    def failed(
        cls,
        recipient: str,
        channel: NotificationChannel,
        error: str | None = None,
    ) -> DeliveryRecord:
        """Create a failed delivery record."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.FAILED,
            error=error,
        )

    @classmethod
    def skipped(
        cls,
        recipient: str,
        channel: NotificationChannel,
        reason: str | None = None,
    ) -> DeliveryRecord:
        """Create a record for a delivery that had nothing to do."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.SKIPPED,
            error=reason,
        )


@dataclass(frozen=True)
class AttachmentVO:
    """Immutable attachment value object."""

    filename: str
    content: bytes
    mimetype: str


@dataclass(frozen=True)
class RenderedNotification:
    """Immutable rendered notification ready for delivery.

    ``data`` carries the structured request payload for channels that ship
    it alongside the text (push, webhook).
    """

    body_text: str
    subject: str | None = None
    body_html: str | None = None
    attachments: list[AttachmentVO] | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.attachments is None:
            object.__setattr__(self, "attachments", [])


def looks_like_html(text: str) -> bool:
    return bool(_TAG_RE.search(text))


def html_to_text(html: str) -> str:
    """Derive a plain-text alternative from an HTML body."""
    text = _STYLE_RE.sub("", html)
    text = _BLOCK_BREAK_RE.sub("\n", text)
    text = unescape(_TAG_RE.sub("", text))
    lines = [_SPACES_RE.sub(" ", line).strip() for line in text.splitlines()]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()
