"""Chunked bulk dispatch."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from .models import DispatchResult, NotificationRequest

logger = logging.getLogger(__name__)

SendFn = Callable[[NotificationRequest], Awaitable[DispatchResult]]


@dataclass(frozen=True)
class BulkItemResult:
    index: int
    notification_id: str
    user_id: str
    result: DispatchResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


@dataclass(frozen=True)
class BulkResult:
    items: tuple[BulkItemResult, ...]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.succeeded)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded


class BulkSender:
    """
    Sends many requests in fixed-size chunks.

    Requests within a chunk run concurrently; chunk ``N + 1`` starts only
    after every send in chunk ``N`` has settled, followed by ``chunk_delay``
    seconds of rest. A failing request is logged and reported in its
    ``BulkItemResult`` without affecting the others.
    """

    def __init__(
        self,
        send: SendFn,
        chunk_size: int = 100,
        chunk_delay: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._send = send
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self._sleep = sleep

    async def send_bulk(self, requests: Sequence[NotificationRequest]) -> BulkResult:
        items: list[BulkItemResult] = []
        chunks = [
            range(start, min(start + self.chunk_size, len(requests)))
            for start in range(0, len(requests), self.chunk_size)
        ]
        for number, chunk in enumerate(chunks, start=1):
            items.extend(
                await asyncio.gather(*(self._send_one(i, requests[i]) for i in chunk))
            )
            logger.debug(f"Bulk chunk {number}/{len(chunks)} settled ({len(chunk)} requests)")
            if number < len(chunks) and self.chunk_delay > 0:
                await self._sleep(self.chunk_delay)

        result = BulkResult(tuple(items))
        logger.info(
            f"Bulk send finished: {result.succeeded}/{result.total} succeeded, "
            f"{result.failed} failed"
        )
        return result

    async def _send_one(self, index: int, request: NotificationRequest) -> BulkItemResult:
        try:
            result = await self._send(request)
        except Exception as e:
            logger.error(
                f"Bulk notification {request.id} for user {request.user_id} failed: {str(e)}",
                exc_info=True,
            )
            return BulkItemResult(index, request.id, request.user_id, error=str(e))
        return BulkItemResult(index, request.id, request.user_id, result=result)
