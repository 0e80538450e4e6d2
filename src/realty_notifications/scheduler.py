"""One-shot timers that resubmit a notification at a future time."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .cache.service import NotificationCache, scheduled_key
from .clock import Clock, ensure_utc, utc_now
from .models import NotificationRequest

logger = logging.getLogger(__name__)

Dispatcher = Callable[[NotificationRequest], Awaitable[Any]]


class ScheduledEnvelope(BaseModel):
    """A request serialized together with the time it should fire."""

    model_config = ConfigDict(frozen=True)

    request: NotificationRequest
    fire_at: datetime
    scheduled_at: datetime
    token: str = Field(default_factory=lambda: uuid.uuid4().hex)


class NotificationScheduler:
    """
    Defers a notification to ``fire_at`` using the cache plus an in-process timer.

    The envelope lives under ``scheduled:<id>`` with a TTL equal to the
    remaining delay. When the timer fires the envelope is re-read; a missing
    envelope means the notification was cancelled (or expired) and nothing
    is sent. Timers are not recovered after a restart.

    When the cache is unavailable the envelope is held in process memory so
    the timer still fires.
    """

    def __init__(
        self,
        cache: NotificationCache,
        *,
        clock: Clock = utc_now,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        self._cache = cache
        self._clock = clock
        self._dispatcher = dispatcher
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._local: dict[str, ScheduledEnvelope] = {}

    def set_dispatcher(self, dispatcher: Dispatcher) -> None:
        """Bind the callable that receives requests when their timer fires."""
        self._dispatcher = dispatcher

    @property
    def pending(self) -> list[str]:
        return list(self._timers)

    async def schedule_notification(
        self, request: NotificationRequest, fire_at: datetime
    ) -> str:
        """
        Arrange for ``request`` to be dispatched at ``fire_at``.

        A ``fire_at`` in the past dispatches immediately. Re-scheduling an
        id replaces its earlier timer.
        """
        fire_at = ensure_utc(fire_at)
        now = self._clock()
        delay = (fire_at - now).total_seconds()
        if delay <= 0:
            logger.info("Scheduled time for %s already passed, dispatching now", request.id)
            await self._dispatch(request)
            return request.id

        envelope = ScheduledEnvelope(request=request, fire_at=fire_at, scheduled_at=now)
        ttl = max(1, math.ceil(delay))
        stored = await self._cache.set(scheduled_key(request.id), envelope, ttl)
        if stored:
            self._local.pop(request.id, None)
        else:
            logger.warning(
                "Cache unavailable, holding scheduled notification %s in memory", request.id
            )
            self._local[request.id] = envelope

        self._cancel_timer(request.id)
        task = asyncio.create_task(
            self._fire_after(request.id, delay), name=f"scheduled-notification:{request.id}"
        )
        self._timers[request.id] = task
        task.add_done_callback(lambda t, nid=request.id: self._forget(nid, t))
        logger.info(
            "Notification %s scheduled for %s (in %.0fs)", request.id, fire_at.isoformat(), delay
        )
        return request.id

    async def cancel(self, notification_id: str) -> bool:
        """Remove a pending notification; returns whether one was pending."""
        was_cached = await self._cache.exists(scheduled_key(notification_id))
        await self._cache.delete(scheduled_key(notification_id))
        was_local = self._local.pop(notification_id, None) is not None
        had_timer = self._cancel_timer(notification_id)
        cancelled = was_cached or was_local or had_timer
        if cancelled:
            logger.info("Scheduled notification %s cancelled", notification_id)
        return cancelled

    async def get_envelope(self, notification_id: str) -> ScheduledEnvelope | None:
        envelope = await self._cache.get(scheduled_key(notification_id), ScheduledEnvelope)
        if envelope is None:
            envelope = self._local.get(notification_id)
        return envelope

    async def is_scheduled(self, notification_id: str) -> bool:
        return await self.get_envelope(notification_id) is not None

    async def fire(self, notification_id: str) -> bool:
        """
        Resubmit a pending notification now.

        Called by the timer; returns ``False`` when the envelope is gone.
        """
        self._cancel_timer(notification_id)
        envelope = await self.get_envelope(notification_id)
        if envelope is None:
            logger.info(
                "Scheduled notification %s no longer pending, nothing to send", notification_id
            )
            return False
        try:
            await self._dispatch(envelope.request)
        finally:
            # Dispatch may have re-deferred the same id under a fresh envelope.
            current = await self.get_envelope(notification_id)
            if current is None or current.token == envelope.token:
                await self._cache.delete(scheduled_key(notification_id))
                self._local.pop(notification_id, None)
        return True

    async def shutdown(self) -> None:
        """Cancel every pending timer. Cached envelopes are left to expire."""
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(task, timeout=5.0)
        if tasks:
            logger.info("Scheduler stopped, %d pending timers cancelled", len(tasks))

    async def _fire_after(self, notification_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.fire(notification_id)
        except Exception:
            logger.exception("Scheduled notification %s failed to dispatch", notification_id)

    async def _dispatch(self, request: NotificationRequest) -> None:
        if self._dispatcher is None:
            raise RuntimeError("NotificationScheduler has no dispatcher bound")
        await self._dispatcher(request)

    def _cancel_timer(self, notification_id: str) -> bool:
        task = self._timers.pop(notification_id, None)
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def _forget(self, notification_id: str, task: asyncio.Task[None]) -> None:
        if self._timers.get(notification_id) is task:
            del self._timers[notification_id]
