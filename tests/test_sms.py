"""Tests for the Twilio SMS provider."""

from unittest.mock import MagicMock

import pytest

from realty_notifications.channel import RecipientInfo
from realty_notifications.delivery import DeliveryStatus, RenderedNotification
from realty_notifications.sms.twilio import (
    TwilioSmsProvider,
    normalize_phone_number,
    truncate_message,
)


@pytest.fixture
def twilio_client():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid="SM123")
    return client


@pytest.fixture
def provider(twilio_client):
    provider = TwilioSmsProvider(
        account_sid="AC123", auth_token="token", from_number="+15550001111"
    )
    provider._client = twilio_client
    return provider


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+1 (415) 555-2671", "+14155552671"),
        ("415-555-2671", "+14155552671"),
        ("+44 20 7946 0958", "+442079460958"),
    ],
)
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


def test_normalize_uses_default_region():
    assert normalize_phone_number("020 7946 0958", default_region="GB") == "+442079460958"


@pytest.mark.parametrize("raw", ["not a number", "12"])
def test_normalize_rejects_garbage(raw):
    with pytest.raises(ValueError):
        normalize_phone_number(raw)


def test_truncate_message_marks_cut():
    text = "x" * 200

    truncated = truncate_message(text, 160)

    assert len(truncated) == 160
    assert truncated.endswith("...")
    assert truncate_message("short", 160) == "short"


def test_readiness_requires_all_credentials():
    assert TwilioSmsProvider("AC1", "tok", "+15550001111").is_ready() is True
    assert TwilioSmsProvider("AC1", None, "+15550001111").is_ready() is False


@pytest.mark.asyncio
async def test_send_normalizes_and_truncates(provider, twilio_client):
    recipient = RecipientInfo(user_id="u1", phone="(415) 555-2671")
    content = RenderedNotification(body_text="y" * 300)

    record = await provider.send(recipient, content)

    assert record.status == DeliveryStatus.SENT
    assert record.provider_id == "SM123"
    kwargs = twilio_client.messages.create.call_args.kwargs
    assert kwargs["to"] == "+14155552671"
    assert kwargs["from_"] == "+15550001111"
    assert len(kwargs["body"]) == 160
    assert kwargs["body"].endswith("...")


@pytest.mark.asyncio
async def test_recipient_without_phone_fails(provider, twilio_client):
    record = await provider.send(RecipientInfo(user_id="u1"), RenderedNotification(body_text="x"))

    assert record.status == DeliveryStatus.FAILED
    twilio_client.messages.create.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_phone_fails_without_calling_twilio(provider, twilio_client):
    record = await provider.send(
        RecipientInfo(user_id="u1", phone="banana"), RenderedNotification(body_text="x")
    )

    assert record.status == DeliveryStatus.FAILED
    twilio_client.messages.create.assert_not_called()


@pytest.mark.asyncio
async def test_twilio_error_returns_failed_record(provider, twilio_client):
    twilio_client.messages.create.side_effect = RuntimeError("Twilio 21610: unsubscribed")

    record = await provider.send(
        RecipientInfo(user_id="u1", phone="+14155552671"), RenderedNotification(body_text="x")
    )

    assert record.status == DeliveryStatus.FAILED
    assert "21610" in record.error
