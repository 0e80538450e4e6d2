"""Tests for chunked bulk dispatch."""

import asyncio

import pytest

from realty_notifications.bulk import BulkSender
from realty_notifications.delivery import NotificationChannel
from realty_notifications.models import (
    DispatchResult,
    DispatchStatus,
    NotificationRequest,
    NotificationType,
)


def _requests(count):
    return [
        NotificationRequest(
            id=f"n{i}",
            user_id=f"u{i}",
            type=NotificationType.SYSTEM_MAINTENANCE,
            title="Maintenance",
            message="Downtime tonight",
            channels=(NotificationChannel.IN_APP,),
        )
        for i in range(count)
    ]


class Recorder:
    """Records the order of sends and chunk pauses."""

    def __init__(self, fail_for=()):
        self.events = []
        self.fail_for = set(fail_for)

    async def send(self, request):
        self.events.append(("send", request.id))
        await asyncio.sleep(0)
        if request.id in self.fail_for:
            raise RuntimeError(f"boom {request.id}")
        return DispatchResult(request.id, DispatchStatus.COMPLETED)

    async def sleep(self, seconds):
        self.events.append(("sleep", seconds))


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        BulkSender(Recorder().send, chunk_size=0)


@pytest.mark.asyncio
async def test_one_failure_does_not_affect_the_rest():
    """A raising request is reported; every other request is still sent."""
    recorder = Recorder(fail_for={"n5"})
    sender = BulkSender(recorder.send, chunk_size=4, sleep=recorder.sleep)

    result = await sender.send_bulk(_requests(10))

    assert result.total == 10
    assert result.succeeded == 9
    assert result.failed == 1
    assert [item.index for item in result.items] == list(range(10))
    failed = [item for item in result.items if not item.succeeded]
    assert [(f.notification_id, f.user_id, f.error) for f in failed] == [("n5", "u5", "boom n5")]


@pytest.mark.asyncio
async def test_chunks_run_in_sequence_with_pause_between():
    recorder = Recorder()
    sender = BulkSender(recorder.send, chunk_size=2, chunk_delay=0.5, sleep=recorder.sleep)

    await sender.send_bulk(_requests(5))

    sleeps = [i for i, event in enumerate(recorder.events) if event[0] == "sleep"]
    assert sleeps == [2, 5]
    assert recorder.events[-1] == ("send", "n4")
    assert recorder.events[2] == ("sleep", 0.5)


@pytest.mark.asyncio
async def test_no_pause_when_delay_is_zero():
    recorder = Recorder()
    sender = BulkSender(recorder.send, chunk_size=1, chunk_delay=0, sleep=recorder.sleep)

    await sender.send_bulk(_requests(3))

    assert all(event[0] == "send" for event in recorder.events)


@pytest.mark.asyncio
async def test_empty_batch():
    recorder = Recorder()

    result = await BulkSender(recorder.send, sleep=recorder.sleep).send_bulk([])

    assert result.total == 0
    assert recorder.events == []
