"""Twilio SMS provider with E.164 normalization and length limit."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import phonenumbers

from ..channel import RecipientInfo
from ..delivery import DeliveryRecord, NotificationChannel, RenderedNotification
from ..ports.sender import IChannelProvider

logger = logging.getLogger(__name__)

SMS_MAX_LENGTH = 160
TRUNCATION_MARKER = "..."


def normalize_phone_number(number: str, default_region: str = "US") -> str:
    """
    Return ``number`` in E.164 form (``+14155552671``).

    National numbers are interpreted in ``default_region``.

    Raises:
        ValueError: the number cannot be parsed or is not a possible number.
    """
    try:
        parsed = phonenumbers.parse(number, default_region)
    except phonenumbers.NumberParseException as e:
        raise ValueError(f"Invalid phone number {number!r}: {e}") from e
    if not phonenumbers.is_possible_number(parsed):
        raise ValueError(f"Invalid phone number {number!r}")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def truncate_message(text: str, max_length: int = SMS_MAX_LENGTH) -> str:
    """Cut ``text`` to ``max_length`` characters, ending with a visible marker."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


class TwilioSmsProvider(IChannelProvider):
    """
    Twilio SMS implementation.

    Requires twilio library:
    pip install 'realty-notifications[sms]'

    The Twilio client is synchronous, so calls run in a worker thread.
    """

    channel = NotificationChannel.SMS

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        default_region: str = "US",
        max_length: int = SMS_MAX_LENGTH,
        timeout: float = 10.0,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.default_region = default_region
        self.max_length = max_length
        self.timeout = timeout
        self._client: Any | None = None

    def is_ready(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def _get_client(self) -> Any:
        if self._client is None:
            # Lazy import of twilio
            try:
                from twilio.http.http_client import TwilioHttpClient
                from twilio.rest import Client as TwilioClient
            except ImportError as e:
                raise ImportError(
                    "twilio is required for TwilioSmsProvider. "
                    "Install with: pip install 'realty-notifications[sms]'"
                ) from e
            self._client = TwilioClient(
                self.account_sid,
                self.auth_token,
                http_client=TwilioHttpClient(timeout=self.timeout),
            )
        return self._client

    async def send(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        if not recipient.phone:
            return DeliveryRecord.failed(
                recipient.user_id, self.channel, error="Recipient has no phone number"
            )
        if not self.is_ready():
            return DeliveryRecord.failed(recipient.phone, self.channel, error="Twilio not configured")

        try:
            to_number = normalize_phone_number(recipient.phone, self.default_region)
        except ValueError as e:
            logger.error(f"Cannot send SMS to user {recipient.user_id}: {e}")
            return DeliveryRecord.failed(recipient.phone, self.channel, error=str(e))

        body = truncate_message(content.body_text, self.max_length)
        if len(body) < len(content.body_text):
            logger.warning(
                f"SMS to {to_number} truncated from {len(content.body_text)} "
                f"to {self.max_length} characters"
            )

        try:
            client = self._get_client()
            message = await asyncio.to_thread(
                client.messages.create,
                to=to_number,
                from_=self.from_number,
                body=body,
            )
            logger.info(f"SMS sent via Twilio to {to_number} (SID: {message.sid})")
            return DeliveryRecord.sent(to_number, self.channel, provider_id=message.sid)

        except ImportError:
            raise
        except Exception as e:
            logger.error(f"Failed to send SMS via Twilio to {to_number}: {str(e)}")
            return DeliveryRecord.failed(to_number, self.channel, error=str(e))
