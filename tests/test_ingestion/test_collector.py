"""Tests for the stream collector."""

import asyncio

import pytest

from kline_watcher.ingestion.stream import CollectorConfig, StreamCollector, collect
from kline_watcher.shared.errors import (
    AggregateError,
    CollectionCancelled,
    ConfigurationError,
    FeedError,
    StoreError,
)
from tests.helpers import FakeLiveSource, FakeSeriesStore, make_event, make_series


def config(**overrides) -> CollectorConfig:
    values = {"symbol": "BTCUSDT", "interval": "1m", "chunk_size": 2}
    values.update(overrides)
    return CollectorConfig(**values)


def final_events(count: int, start: int = 0):
    return [make_event(c) for c in make_series(start, count)]


class TestCollectorConfig:
    def test_defaults(self):
        cfg = config()
        assert cfg.flush_on_close is True
        assert cfg.debug is False
        assert cfg.error_handler is None

    @pytest.mark.parametrize(
        "overrides",
        [{"symbol": ""}, {"interval": "1x"}, {"chunk_size": 0}, {"chunk_size": -3}],
    )
    def test_invalid_config(self, overrides):
        with pytest.raises(ConfigurationError):
            config(**overrides)

    def test_is_immutable(self):
        cfg = config()
        with pytest.raises(AttributeError):
            cfg.chunk_size = 10


class TestChunking:
    @pytest.mark.asyncio
    async def test_flushes_trailing_partial_chunk(self):
        store = FakeSeriesStore()
        source = FakeLiveSource(final_events(5))

        result = await collect(source, store, config(flush_on_close=True))

        assert [len(batch) for batch in store.writes] == [2, 2, 1]
        assert result.batch_sizes == [2, 2, 1]
        assert result.candles_written == 5
        assert result.dropped_on_close == 0

    @pytest.mark.asyncio
    async def test_drops_trailing_partial_chunk(self):
        store = FakeSeriesStore()
        source = FakeLiveSource(final_events(5))

        result = await collect(source, store, config(flush_on_close=False))

        assert [len(batch) for batch in store.writes] == [2, 2]
        assert result.dropped_on_close == 1

    @pytest.mark.asyncio
    async def test_non_final_events_are_discarded(self):
        store = FakeSeriesStore()
        candles = make_series(0, 3)
        events = [
            make_event(candles[0], is_final=False),
            make_event(candles[0]),
            make_event(candles[1], is_final=False),
            make_event(candles[1]),
            make_event(candles[2]),
        ]

        result = await collect(FakeLiveSource(events), store, config())

        assert result.events_seen == 5
        assert result.events_discarded == 2
        assert [c.open_time for c in store.series()] == [0, 10, 20]

    @pytest.mark.asyncio
    async def test_preserves_event_order(self):
        store = FakeSeriesStore()
        await collect(FakeLiveSource(final_events(4)), store, config())

        written = [c.open_time for batch in store.writes for c in batch]
        assert written == [0, 10, 20, 30]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        store = FakeSeriesStore()
        result = await collect(FakeLiveSource(), store, config())
        assert store.writes == []
        assert result.batches_written == 0

    @pytest.mark.asyncio
    async def test_subscription_closed_after_run(self):
        source = FakeLiveSource(final_events(2))
        await collect(source, FakeSeriesStore(), config())
        assert source.subscriptions[0].closed


class TestFeedErrors:
    @pytest.mark.asyncio
    async def test_errors_go_to_handler_and_do_not_stop_collection(self):
        seen = []
        errors = [FeedError("bad message"), FeedError("socket hiccup")]
        store = FakeSeriesStore()

        result = await collect(
            FakeLiveSource(final_events(4), errors=errors),
            store,
            config(error_handler=seen.append),
        )

        assert seen == errors
        assert result.feed_errors == 2
        assert result.candles_written == 4

    @pytest.mark.asyncio
    async def test_failing_handler_is_not_fatal(self):
        def handler(error):
            raise RuntimeError("handler broke")

        result = await collect(
            FakeLiveSource(final_events(2), errors=[FeedError("x")]),
            FakeSeriesStore(),
            config(error_handler=handler),
        )

        assert result.candles_written == 2
        assert result.feed_errors == 1

    @pytest.mark.asyncio
    async def test_default_handler_logs(self):
        result = await collect(
            FakeLiveSource(errors=[FeedError("x")]), FakeSeriesStore(), config()
        )
        assert result.feed_errors == 1


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store_error):
        store = FakeSeriesStore()
        store.fail_write = store_error

        with pytest.raises(StoreError):
            await collect(FakeLiveSource(final_events(2)), store, config())

    @pytest.mark.asyncio
    async def test_stop_before_start(self):
        stop = asyncio.Event()
        stop.set()
        store = FakeSeriesStore()

        with pytest.raises(CollectionCancelled):
            await collect(FakeLiveSource(final_events(3)), store, config(), stop_event=stop)
        assert store.writes == []

    @pytest.mark.asyncio
    async def test_stop_flushes_partial_chunk(self):
        stop = asyncio.Event()
        store = FakeSeriesStore()
        source = FakeLiveSource(final_events(3), keep_open=True)
        asyncio.get_running_loop().call_later(0.05, stop.set)

        with pytest.raises(CollectionCancelled):
            await collect(source, store, config(chunk_size=5), stop_event=stop)

        assert [len(batch) for batch in store.writes] == [3]
        assert source.subscriptions[0].closed

    @pytest.mark.asyncio
    async def test_stop_with_failing_flush_aggregates_both(self, store_error):
        stop = asyncio.Event()
        store = FakeSeriesStore()
        store.fail_write = store_error
        source = FakeLiveSource(final_events(3), keep_open=True)
        asyncio.get_running_loop().call_later(0.05, stop.set)

        with pytest.raises(AggregateError) as exc_info:
            await collect(source, store, config(chunk_size=5), stop_event=stop)

        first, second = exc_info.value.causes
        assert isinstance(first, CollectionCancelled)
        assert second is store_error

    @pytest.mark.asyncio
    async def test_task_cancellation_flushes_partial_chunk(self):
        store = FakeSeriesStore()
        source = FakeLiveSource(final_events(1), keep_open=True)
        collector = StreamCollector(source, store, config(chunk_size=5))

        task = asyncio.create_task(collector.run())
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert [len(batch) for batch in store.writes] == [1]
        assert source.subscriptions[0].closed
