"""Channel provider port."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from ..channel import RecipientInfo
from ..delivery import DeliveryRecord, NotificationChannel, RenderedNotification


@runtime_checkable
class IChannelProvider(Protocol):
    """
    Uniform contract every delivery channel implements.

    Adapters must explicitly declare: class TwilioSmsProvider(IChannelProvider):

    ``send`` never raises for transport problems: it returns a failed
    ``DeliveryRecord`` instead, or a skipped one when the recipient has no
    address for this channel. ``SENT`` means accepted by the provider, not
    proof of final delivery.
    """

    channel: NotificationChannel

    def is_ready(self) -> bool:
        """Whether the provider is configured and able to send."""
        ...

    async def send(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        """Send rendered content and return the delivery record."""
        ...
