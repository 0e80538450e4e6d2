"""Tests for the notification orchestrator."""

from datetime import datetime, timedelta, timezone

import pytest

from realty_notifications.cache.service import scheduled_key, user_stats_key
from realty_notifications.delivery import NotificationChannel
from realty_notifications.exceptions import ValidationError
from realty_notifications.models import (
    DispatchStatus,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
)
from realty_notifications.preferences import ChannelOverrides, QuietHours, UserPreferences

EMAIL = NotificationChannel.EMAIL
SMS = NotificationChannel.SMS
PUSH = NotificationChannel.PUSH
IN_APP = NotificationChannel.IN_APP
WEBHOOK = NotificationChannel.WEBHOOK


def _request(**overrides):
    fields = {
        "user_id": "u1",
        "type": NotificationType.PROPERTY_INQUIRY,
        "title": "New Inquiry",
        "message": "Someone asked about your listing",
        "channels": (EMAIL, SMS, PUSH, IN_APP),
    }
    fields.update(overrides)
    return NotificationRequest(**fields)


@pytest.mark.asyncio
async def test_inquiry_dispatches_email_and_in_app(
    orchestrator, inquiry_request, providers, in_app_store, preference_store
):
    """Email and in-app are delivered when both are enabled."""
    await preference_store.save(UserPreferences(user_id="u1", email=True, in_app=True))

    result = await orchestrator.send_notification(inquiry_request)

    assert result.status is DispatchStatus.COMPLETED
    summary = result.channel_summary()
    assert summary["email"] is True
    assert summary["database"] is True
    assert summary["sms"] is False
    assert summary["push"] is False
    providers[EMAIL].assert_sent("u1", 1)
    assert providers[SMS].attempts == 0
    stored = await in_app_store.list_for_user("u1")
    assert [n.id for n in stored] == [inquiry_request.id]
    assert stored[0].is_read is False


@pytest.mark.asyncio
async def test_missing_template_variables_fall_back_to_raw_content(
    orchestrator, inquiry_request, providers
):
    """Implicit templates that cannot be filled send the plain title and message."""
    result = await orchestrator.send_notification(inquiry_request)

    outcome = result.outcomes[EMAIL]
    assert outcome.success is True
    assert "propertyTitle" in outcome.missing_variables
    sent = providers[EMAIL].sent_messages[0]
    assert sent.content.subject == "New Inquiry"
    assert sent.content.body_text == "Someone asked about your listing"


@pytest.mark.asyncio
async def test_complete_data_renders_the_channel_template(orchestrator, providers):
    """The (type, channel) template is used when its variables are present."""
    request = _request(
        channels=(SMS,),
        data={"propertyTitle": "Sunny Loft", "inquirerName": "Bob"},
    )

    result = await orchestrator.send_notification(request)

    assert result.succeeded(SMS)
    body = providers[SMS].sent_messages[0].content.body_text
    assert "Sunny Loft" in body
    assert "Bob" in body
    assert "{{" not in body


@pytest.mark.asyncio
async def test_sms_without_template_prefixes_title(orchestrator, providers):
    """Untemplated SMS bodies read 'title: message'."""
    request = _request(type=NotificationType.NEW_MESSAGE, channels=(SMS,))

    await orchestrator.send_notification(request)

    body = providers[SMS].sent_messages[0].content.body_text
    assert body == "New Inquiry: Someone asked about your listing"


@pytest.mark.asyncio
async def test_quiet_hours_defer_to_window_end(
    orchestrator, clock, providers, preference_store, cache, inquiry_request
):
    """Inside quiet hours nothing is sent and an envelope is cached until the window ends."""
    clock.now = datetime(2024, 1, 15, 23, 30, tzinfo=timezone.utc)
    await preference_store.save(
        UserPreferences(
            user_id="u1",
            quiet_hours=QuietHours(start="22:00", end="06:00", timezone="UTC"),
        )
    )

    result = await orchestrator.send_notification(inquiry_request)

    assert result.status is DispatchStatus.DEFERRED
    assert result.fire_at == datetime(2024, 1, 16, 6, 0, tzinfo=timezone.utc)
    assert all(p.attempts == 0 for p in providers.values())
    assert await cache.exists(scheduled_key(inquiry_request.id))
    assert await cache.ttl(scheduled_key(inquiry_request.id)) == 23400


@pytest.mark.asyncio
async def test_explicit_schedule_bypasses_quiet_hours(
    orchestrator, clock, providers, preference_store
):
    """A due scheduled notification is delivered even inside quiet hours."""
    clock.now = datetime(2024, 1, 15, 23, 30, tzinfo=timezone.utc)
    await preference_store.save(
        UserPreferences(
            user_id="u1",
            quiet_hours=QuietHours(start="22:00", end="06:00", timezone="UTC"),
        )
    )
    request = _request(channels=(EMAIL,), scheduled_at=clock.now - timedelta(minutes=1))

    result = await orchestrator.send_notification(request)

    assert result.status is DispatchStatus.COMPLETED
    providers[EMAIL].assert_sent("u1", 1)


@pytest.mark.asyncio
async def test_future_scheduled_at_is_handed_to_scheduler(
    orchestrator, clock, providers, scheduler
):
    request = _request(channels=(EMAIL,), scheduled_at=clock.now + timedelta(hours=2))

    result = await orchestrator.send_notification(request)

    assert result.status is DispatchStatus.SCHEDULED
    assert result.fire_at == clock.now + timedelta(hours=2)
    assert await scheduler.is_scheduled(request.id)
    assert providers[EMAIL].attempts == 0


@pytest.mark.asyncio
async def test_expired_request_is_dropped(orchestrator, clock, providers):
    request = _request(expires_at=clock.now - timedelta(seconds=1))

    result = await orchestrator.send_notification(request)

    assert result.status is DispatchStatus.EXPIRED
    assert all(p.attempts == 0 for p in providers.values())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "prefs",
    [
        UserPreferences(user_id="u1", sms=False),
        UserPreferences(
            user_id="u1",
            types={NotificationType.PROPERTY_INQUIRY: ChannelOverrides(sms=False)},
        ),
    ],
)
async def test_disabled_channel_provider_is_never_invoked(
    orchestrator, providers, preference_store, prefs
):
    """Global toggles and per-type overrides both keep the provider untouched."""
    await preference_store.save(prefs)

    result = await orchestrator.send_notification(_request())

    assert providers[SMS].attempts == 0
    assert SMS not in result.outcomes
    assert result.succeeded(EMAIL)


@pytest.mark.asyncio
async def test_type_override_enables_channel_disabled_globally(
    orchestrator, providers, preference_store
):
    await preference_store.save(
        UserPreferences(
            user_id="u1",
            sms=False,
            types={NotificationType.PROPERTY_INQUIRY: ChannelOverrides(sms=True)},
        )
    )

    await orchestrator.send_notification(_request(channels=(SMS,)))

    providers[SMS].assert_sent("u1", 1)


@pytest.mark.asyncio
async def test_all_channels_disabled_is_suppressed(orchestrator, providers, preference_store):
    await preference_store.save(
        UserPreferences(user_id="u1", email=False, sms=False, push=False, in_app=False)
    )

    result = await orchestrator.send_notification(_request())

    assert result.status is DispatchStatus.SUPPRESSED
    assert result.outcomes == {}
    assert all(p.attempts == 0 for p in providers.values())


@pytest.mark.asyncio
async def test_failing_provider_does_not_affect_siblings(orchestrator, providers):
    """One provider raising is reported as a failed outcome only."""
    providers[SMS].raise_for = {"u1"}

    result = await orchestrator.send_notification(_request())

    assert result.status is DispatchStatus.COMPLETED
    assert result.succeeded(EMAIL)
    assert result.succeeded(PUSH)
    assert result.succeeded(IN_APP)
    assert not result.succeeded(SMS)
    assert "exploded" in result.errors()["sms"]


@pytest.mark.asyncio
async def test_failed_delivery_record_becomes_failed_outcome(orchestrator, providers):
    providers[PUSH].fail_with = "push service down"

    result = await orchestrator.send_notification(_request())

    outcome = result.outcomes[PUSH]
    assert outcome.success is False
    assert outcome.skipped is False
    assert "push service down" in outcome.error


@pytest.mark.asyncio
async def test_not_ready_provider_is_skipped(orchestrator, providers):
    providers[EMAIL].ready = False

    result = await orchestrator.send_notification(_request())

    assert result.outcomes[EMAIL].skipped is True
    assert "email" not in result.errors()
    assert providers[EMAIL].attempts == 0
    assert result.succeeded(SMS)


@pytest.mark.asyncio
async def test_preference_store_failure_uses_conservative_defaults(
    orchestrator, providers, preference_store
):
    async def broken(user_id):
        raise ConnectionError("preferences db down")

    preference_store.get = broken

    result = await orchestrator.send_notification(_request())

    assert providers[SMS].attempts == 0
    assert result.succeeded(EMAIL)


@pytest.mark.asyncio
async def test_webhook_url_comes_from_preferences(orchestrator, providers, preference_store):
    await preference_store.save(
        UserPreferences(
            user_id="u1", webhook_url="https://hooks.example.com/u1", webhook_secret="s3cret"
        )
    )

    await orchestrator.send_notification(_request(channels=(WEBHOOK,)))

    recipient = providers[WEBHOOK].sent_messages[0].recipient
    assert recipient.webhook_url == "https://hooks.example.com/u1"
    assert recipient.webhook_secret == "s3cret"


@pytest.mark.asyncio
async def test_metadata_passed_to_providers(orchestrator, providers):
    request = _request(
        channels=(PUSH,), priority=NotificationPriority.URGENT, action_url="/inquiries/1"
    )

    await orchestrator.send_notification(request)

    metadata = providers[PUSH].sent_messages[0].metadata
    assert metadata["notification_id"] == request.id
    assert metadata["notification_type"] == "PROPERTY_INQUIRY"
    assert metadata["elevated"] is True
    assert metadata["action_url"] == "/inquiries/1"


@pytest.mark.asyncio
async def test_explicit_template_with_missing_variables_fails_channel(
    orchestrator, providers
):
    request = _request(channels=(EMAIL, IN_APP), metadata={"template": "password-reset-email"})

    result = await orchestrator.send_notification(request)

    assert not result.succeeded(EMAIL)
    assert "resetUrl" in result.errors()["email"]
    assert providers[EMAIL].attempts == 0
    assert result.succeeded(IN_APP)


@pytest.mark.asyncio
async def test_unknown_explicit_template_fails_channel(orchestrator):
    request = _request(channels=(EMAIL,), metadata={"template": "no-such-template"})

    result = await orchestrator.send_notification(request)

    assert "no-such-template" in result.errors()["email"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"user_id": ""}, "userId"),
        ({"title": "   "}, "title"),
        ({"message": ""}, "message"),
        ({"channels": ()}, "channels"),
    ],
)
async def test_invalid_request_raises_validation_error(orchestrator, providers, overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        await orchestrator.send_notification(_request(**overrides))

    assert field in exc_info.value.errors
    assert all(p.attempts == 0 for p in providers.values())


@pytest.mark.asyncio
async def test_payload_is_validated_against_type(orchestrator):
    request = _request(type=NotificationType.PASSWORD_RESET, channels=(EMAIL,))

    with pytest.raises(ValidationError) as exc_info:
        await orchestrator.send_notification(request)

    assert "data.resetUrl" in exc_info.value.errors


# ── Read model ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_mark_as_read_invalidates_cached_stats(orchestrator, inquiry_request, cache):
    """Stats read right after a mutation reflect the mutation."""
    await orchestrator.send_notification(inquiry_request)
    before = await orchestrator.get_stats("u1")
    assert before.unread_count == 1
    assert await cache.exists(user_stats_key("u1"))

    assert await orchestrator.mark_as_read("u1", inquiry_request.id) is True
    after = await orchestrator.get_stats("u1")

    assert after.unread_count == 0
    assert after.total_count == 1


@pytest.mark.asyncio
async def test_unread_count_and_mark_all(orchestrator):
    for _ in range(3):
        await orchestrator.send_notification(_request(channels=(IN_APP,)))
    assert await orchestrator.get_unread_count("u1") == 3

    assert await orchestrator.mark_all_as_read("u1") == 3
    assert await orchestrator.get_unread_count("u1") == 0


@pytest.mark.asyncio
async def test_get_notifications_paginates_and_filters(orchestrator):
    for _ in range(5):
        await orchestrator.send_notification(_request(channels=(IN_APP,)))
    await orchestrator.send_notification(
        _request(type=NotificationType.NEW_MESSAGE, channels=(IN_APP,))
    )

    page = await orchestrator.get_notifications("u1", page=2, limit=4)
    assert len(page.notifications) == 2
    assert page.pagination.total == 6
    assert page.pagination.pages == 2

    messages = await orchestrator.get_notifications(
        "u1", notification_type=NotificationType.NEW_MESSAGE
    )
    assert [n.type for n in messages.notifications] == [NotificationType.NEW_MESSAGE]


@pytest.mark.asyncio
async def test_delete_notification_updates_list(orchestrator, inquiry_request):
    await orchestrator.send_notification(inquiry_request)
    assert (await orchestrator.get_notifications("u1")).pagination.total == 1

    assert await orchestrator.delete_notification("u1", inquiry_request.id) is True

    assert (await orchestrator.get_notifications("u1")).pagination.total == 0


@pytest.mark.asyncio
async def test_invalid_pagination_rejected(orchestrator):
    with pytest.raises(ValidationError):
        await orchestrator.get_notifications("u1", page=0)
