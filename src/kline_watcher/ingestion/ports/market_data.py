"""
Market data port protocols for capability-based adapters.

A source declares what it can do by the ports it implements:
- HistoricalKlinePort: bounded range queries (used by the gap fixer)
- LiveKlinePort: live subscription (used by the stream collector)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol

from kline_watcher.shared.models import Candle, StreamEvent

_CLOSED = object()


class Subscription:
    """Handle for one live subscription.

    Owns two independent queues: finalized/in-progress kline events, and feed
    errors. Producers publish into them; each side is consumed separately and
    ends once the subscription is closed. Items published before close() are
    still delivered.
    """

    def __init__(self) -> None:
        self._events: asyncio.Queue = asyncio.Queue()
        self._errors: asyncio.Queue = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self._closed = False
        self._events_done = False
        self._errors_done = False

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, task: asyncio.Task) -> None:
        """Tie a producer task to this subscription; aclose() cancels it."""
        self._tasks.append(task)

    def publish(self, event: StreamEvent) -> None:
        if self._closed:
            raise RuntimeError("Subscription is closed")
        self._events.put_nowait(event)

    def report(self, error: BaseException) -> None:
        if self._closed:
            raise RuntimeError("Subscription is closed")
        self._errors.put_nowait(error)

    def close(self) -> None:
        """End both streams (idempotent)."""
        if self._closed:
            return
        self._closed = True
        self._events.put_nowait(_CLOSED)
        self._errors.put_nowait(_CLOSED)

    async def aclose(self) -> None:
        """Stop producers, then close both streams."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self.close()

    async def next_event(self) -> StreamEvent | None:
        """Wait for the next event; None once the stream has ended."""
        if self._events_done:
            return None
        item = await self._events.get()
        if item is _CLOSED:
            self._events_done = True
            return None
        return item

    async def events(self) -> AsyncIterator[StreamEvent]:
        while (event := await self.next_event()) is not None:
            yield event

    async def errors(self) -> AsyncIterator[BaseException]:
        while not self._errors_done:
            item = await self._errors.get()
            if item is _CLOSED:
                self._errors_done = True
                return
            yield item


class HistoricalKlinePort(Protocol):
    """Bounded historical kline queries."""

    async def fetch_range(
        self,
        symbol: str,
        interval: str,
        start: int,
        end: int,
        limit: int,
    ) -> list[Candle]:
        """Return candles with open_time in [start, end], ascending, at most `limit`.

        An empty list means the source has no data in the range.

        Raises:
            SourceError: operation "fetch"
        """
        ...


class LiveKlinePort(Protocol):
    """Live kline subscription."""

    async def subscribe(self, symbol: str, interval: str) -> Subscription:
        """Open a live subscription for (symbol, interval).

        Raises:
            SourceError: operation "subscribe"
        """
        ...
