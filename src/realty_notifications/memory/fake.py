"""In-memory provider for test assertions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from ..channel import RecipientInfo
from ..delivery import DeliveryRecord, NotificationChannel, RenderedNotification
from ..ports.sender import IChannelProvider

logger = logging.getLogger(__name__)


@dataclass
class SentMessage:
    """Record of a sent message for test assertions."""

    recipient: RecipientInfo
    content: RenderedNotification
    channel: NotificationChannel
    metadata: Mapping[str, object] | None


class InMemoryProvider(IChannelProvider):
    """
    Test double (Fake) that stores messages in a list for assertions.

    ``ready`` toggles readiness, ``raise_for`` makes ``send`` raise for the
    given user ids and ``fail_with`` makes it return a failed record.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        *,
        ready: bool = True,
        raise_for: set[str] | None = None,
        fail_with: str | None = None,
    ) -> None:
        self.channel = channel
        self.ready = ready
        self.raise_for = raise_for or set()
        self.fail_with = fail_with
        self.sent_messages: list[SentMessage] = []
        self.attempts = 0

    def is_ready(self) -> bool:
        return self.ready

    async def send(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        self.attempts += 1
        if recipient.user_id in self.raise_for:
            raise RuntimeError(f"{self.channel.value} provider exploded for {recipient.user_id}")
        if self.fail_with is not None:
            return DeliveryRecord.failed(recipient.user_id, self.channel, error=self.fail_with)
        self.sent_messages.append(SentMessage(recipient, content, self.channel, metadata))
        return DeliveryRecord.sent(recipient.user_id, self.channel, provider_id="test-id")

    def assert_sent(self, user_id: str, count: int = 1) -> None:
        """Helper for test assertions."""
        matches = [m for m in self.sent_messages if m.recipient.user_id == user_id]
        if len(matches) != count:
            raise AssertionError(
                f"Expected {count} messages to {user_id} via {self.channel.value}, "
                f"but found {len(matches)}."
            )

    def clear(self) -> None:
        """Clear all sent messages."""
        self.sent_messages.clear()
        self.attempts = 0
