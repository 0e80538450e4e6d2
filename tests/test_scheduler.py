"""Tests for the notification scheduler."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from realty_notifications.cache.service import NotificationCache, scheduled_key
from realty_notifications.delivery import NotificationChannel
from realty_notifications.models import NotificationRequest, NotificationType
from realty_notifications.scheduler import NotificationScheduler, ScheduledEnvelope


def _request():
    return NotificationRequest(
        user_id="u1",
        type=NotificationType.APPOINTMENT_REMINDER,
        title="Appointment Reminder",
        message="Your viewing starts soon",
        channels=(NotificationChannel.SMS,),
    )


@pytest.mark.asyncio
async def test_past_fire_time_dispatches_immediately(scheduler, clock):
    dispatcher = AsyncMock()
    scheduler.set_dispatcher(dispatcher)
    request = _request()

    await scheduler.schedule_notification(request, clock.now - timedelta(seconds=5))

    dispatcher.assert_awaited_once_with(request)
    assert scheduler.pending == []


@pytest.mark.asyncio
async def test_future_fire_time_stores_envelope_with_ttl(scheduler, clock, cache):
    scheduler.set_dispatcher(AsyncMock())
    request = _request()

    notification_id = await scheduler.schedule_notification(
        request, clock.now + timedelta(minutes=30)
    )

    assert notification_id == request.id
    assert scheduler.pending == [request.id]
    envelope = await cache.get(scheduled_key(request.id), ScheduledEnvelope)
    assert envelope.request == request
    assert envelope.fire_at == clock.now + timedelta(minutes=30)
    assert await cache.ttl(scheduled_key(request.id)) == 1800


@pytest.mark.asyncio
async def test_fire_resubmits_and_deletes_envelope(scheduler, clock, cache):
    dispatcher = AsyncMock()
    scheduler.set_dispatcher(dispatcher)
    request = _request()
    await scheduler.schedule_notification(request, clock.now + timedelta(hours=1))

    assert await scheduler.fire(request.id) is True

    dispatcher.assert_awaited_once_with(request)
    assert not await cache.exists(scheduled_key(request.id))
    assert scheduler.pending == []


@pytest.mark.asyncio
async def test_cancelled_notification_is_not_sent(scheduler, clock):
    dispatcher = AsyncMock()
    scheduler.set_dispatcher(dispatcher)
    request = _request()
    await scheduler.schedule_notification(request, clock.now + timedelta(hours=1))

    assert await scheduler.cancel(request.id) is True
    assert await scheduler.fire(request.id) is False

    dispatcher.assert_not_awaited()
    assert await scheduler.cancel(request.id) is False


@pytest.mark.asyncio
async def test_expired_envelope_is_treated_as_not_scheduled(scheduler, clock, monotonic):
    """An envelope evicted by TTL makes the timer a no-op."""
    dispatcher = AsyncMock()
    scheduler.set_dispatcher(dispatcher)
    request = _request()
    await scheduler.schedule_notification(request, clock.now + timedelta(seconds=60))

    monotonic.value += 61

    assert await scheduler.is_scheduled(request.id) is False
    assert await scheduler.fire(request.id) is False
    dispatcher.assert_not_awaited()


@pytest.mark.asyncio
async def test_timer_fires_after_delay(cache, clock):
    dispatched = asyncio.Event()

    async def dispatcher(request):
        dispatched.set()

    scheduler = NotificationScheduler(cache, clock=clock, dispatcher=dispatcher)
    await scheduler.schedule_notification(_request(), clock.now + timedelta(milliseconds=20))

    await asyncio.wait_for(dispatched.wait(), timeout=2.0)
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_rescheduling_replaces_previous_timer(scheduler, clock):
    scheduler.set_dispatcher(AsyncMock())
    request = _request()

    await scheduler.schedule_notification(request, clock.now + timedelta(hours=1))
    await scheduler.schedule_notification(request, clock.now + timedelta(hours=2))

    assert scheduler.pending == [request.id]
    envelope = await scheduler.get_envelope(request.id)
    assert envelope.fire_at == clock.now + timedelta(hours=2)


@pytest.mark.asyncio
async def test_cache_outage_keeps_envelope_in_memory(clock):
    dispatcher = AsyncMock()
    cache = NotificationCache(None)
    scheduler = NotificationScheduler(cache, clock=clock, dispatcher=dispatcher)
    request = _request()

    await scheduler.schedule_notification(request, clock.now + timedelta(hours=1))

    assert await scheduler.is_scheduled(request.id)
    assert await scheduler.fire(request.id) is True
    dispatcher.assert_awaited_once_with(request)
    assert not await scheduler.is_scheduled(request.id)
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_timers(scheduler, clock):
    dispatcher = AsyncMock()
    scheduler.set_dispatcher(dispatcher)
    await scheduler.schedule_notification(_request(), clock.now + timedelta(hours=1))

    await scheduler.shutdown()

    assert scheduler.pending == []
    dispatcher.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_dispatcher_raises(scheduler, clock):
    with pytest.raises(RuntimeError):
        await scheduler.schedule_notification(_request(), clock.now)
