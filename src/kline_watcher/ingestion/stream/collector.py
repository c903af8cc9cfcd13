"""
Stream Collector
Persists finalized klines from a live subscription in fixed-size chunks.

One run owns two cooperative tasks:
- the main loop: accumulate a chunk of final candles, flush it, repeat;
- the error drain: hand every feed error to the configured handler.

Buffered final candles are never dropped on failure: a cancelled or failing
chunk cycle flushes whatever it holds before the error propagates.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

from kline_watcher.common.utils.intervals import validate_chunk_size, validate_interval
from kline_watcher.infrastructure.observability import get_ingestion_logger
from kline_watcher.ingestion.ports.market_data import LiveKlinePort, Subscription
from kline_watcher.shared.errors import (
    AggregateError,
    CollectionCancelled,
    ConfigurationError,
)
from kline_watcher.shared.models import Candle, StreamEvent
from kline_watcher.storage.ports import SeriesStore

ErrorHandler = Callable[[BaseException], None]


@dataclass(frozen=True)
class CollectorConfig:
    """Immutable collector settings.

    Attributes:
        symbol: Instrument symbol (required)
        interval: Interval label (required)
        chunk_size: Candles per batch write (required)
        error_handler: Called with every feed error; defaults to logging it
        debug: Log every flush at info level
        flush_on_close: Write a trailing partial chunk when the stream ends
    """

    symbol: str
    interval: str
    chunk_size: int
    error_handler: ErrorHandler | None = None
    debug: bool = False
    flush_on_close: bool = True

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ConfigurationError("symbol is required")
        validate_interval(self.interval)
        validate_chunk_size(self.chunk_size)


@dataclass
class CollectorResult:
    """Counters of one collector run."""

    symbol: str
    interval: str
    events_seen: int = 0
    events_discarded: int = 0
    batches_written: int = 0
    candles_written: int = 0
    feed_errors: int = 0
    dropped_on_close: int = 0
    batch_sizes: list[int] = field(default_factory=list)


class StreamCollector:
    """
    Consumes a live kline subscription and writes final candles to a series store.

    Responsibilities:
    - Subscribe once and drain the feed's error stream concurrently
    - Buffer final candles, flush exactly `chunk_size` per write
    - Flush partial buffers before propagating failures or cancellation
    - NOT responsible for: reconnecting, retrying writes, gap repair
    """

    def __init__(
        self,
        source: LiveKlinePort,
        store: SeriesStore,
        config: CollectorConfig,
    ):
        self.source = source
        self.store = store
        self.config = config
        self.log = get_ingestion_logger(
            "stream-collector", symbol=config.symbol, interval=config.interval
        )

    async def run(self, stop_event: asyncio.Event | None = None) -> CollectorResult:
        """
        Collect until the subscription ends.

        Args:
            stop_event: Cooperative cancellation signal, observed between events

        Returns:
            CollectorResult when the live stream ends on its own

        Raises:
            CollectionCancelled: stop_event was set (partial chunk flushed first)
            StoreError: a batch write failed
            AggregateError: cancellation or failure followed by a failed flush
        """
        result = CollectorResult(symbol=self.config.symbol, interval=self.config.interval)
        subscription = await self.source.subscribe(self.config.symbol, self.config.interval)
        self.log.info("collector_started", chunk_size=self.config.chunk_size)

        drain = asyncio.create_task(
            self._drain_errors(subscription, result),
            name=f"kline-errors-{self.config.symbol}-{self.config.interval}",
        )
        try:
            while True:
                stream_closed = await self._run_chunk_cycle(subscription, stop_event, result)
                if stream_closed:
                    self.log.info(
                        "collector_stream_ended",
                        batches=result.batches_written,
                        candles=result.candles_written,
                    )
                    return result
        finally:
            await subscription.aclose()
            await drain

    async def _run_chunk_cycle(
        self,
        subscription: Subscription,
        stop_event: asyncio.Event | None,
        result: CollectorResult,
    ) -> bool:
        """Accumulate and flush one chunk. Returns True once the stream has ended."""
        buffer: list[Candle] = []
        stream_closed = False

        try:
            while len(buffer) < self.config.chunk_size:
                if stop_event is not None and stop_event.is_set():
                    raise CollectionCancelled(
                        f"collection of {self.config.symbol}/{self.config.interval} cancelled"
                    )
                event = await self._next_event(subscription, stop_event)
                if event is None:
                    stream_closed = True
                    break
                result.events_seen += 1
                if not event.is_final:
                    result.events_discarded += 1
                    continue
                buffer.append(event.candle)
        except asyncio.CancelledError:
            if buffer:
                await self._flush_before_cancel(buffer, result)
            raise
        except Exception as exc:
            if buffer:
                try:
                    await self._flush(buffer, result)
                except Exception as flush_exc:
                    raise AggregateError([exc, flush_exc]) from flush_exc
            raise

        if stream_closed and buffer and not self.config.flush_on_close:
            result.dropped_on_close = len(buffer)
            self.log.warning("partial_chunk_dropped", candles=len(buffer))
            return True

        if buffer:
            await self._flush(buffer, result)
        return stream_closed

    async def _next_event(
        self, subscription: Subscription, stop_event: asyncio.Event | None
    ) -> StreamEvent | None:
        """Next event, or None when the stream ended. Raises CollectionCancelled on stop."""
        if stop_event is None:
            return await subscription.next_event()

        getter = asyncio.ensure_future(subscription.next_event())
        stopper = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {getter, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (getter, stopper):
                if not task.done():
                    task.cancel()

        if getter in done:
            return getter.result()
        raise CollectionCancelled(
            f"collection of {self.config.symbol}/{self.config.interval} cancelled"
        )

    async def _flush(self, buffer: list[Candle], result: CollectorResult) -> None:
        written = await self.store.write_batch(
            self.config.symbol, self.config.interval, buffer
        )
        result.batches_written += 1
        result.candles_written += written
        result.batch_sizes.append(len(buffer))

        emit = self.log.info if self.config.debug else self.log.debug
        emit(
            "chunk_flushed",
            candles=len(buffer),
            first_open_time=buffer[0].open_time,
            last_open_time=buffer[-1].open_time,
        )

    async def _flush_before_cancel(
        self, buffer: list[Candle], result: CollectorResult
    ) -> None:
        # The task is being cancelled: the flush error is logged, the
        # CancelledError is what the caller gets.
        try:
            await self._flush(buffer, result)
        except Exception as exc:
            self.log.error("flush_on_cancel_failed", candles=len(buffer), error=str(exc))

    async def _drain_errors(
        self, subscription: Subscription, result: CollectorResult
    ) -> None:
        handler = self.config.error_handler or self._log_feed_error
        async for error in subscription.errors():
            result.feed_errors += 1
            try:
                handler(error)
            except Exception as exc:
                self.log.error("error_handler_failed", error=str(exc))

    def _log_feed_error(self, error: BaseException) -> None:
        self.log.error("feed_error", error=str(error), error_type=type(error).__name__)


async def collect(
    source: LiveKlinePort,
    store: SeriesStore,
    config: CollectorConfig,
    stop_event: asyncio.Event | None = None,
) -> CollectorResult:
    """Run a StreamCollector once; see StreamCollector.run."""
    return await StreamCollector(source, store, config).run(stop_event)
