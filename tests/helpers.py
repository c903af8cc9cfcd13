"""
Test doubles: in-memory series store and kline sources.

The fakes honour the same contracts as the real collaborators (ascending
reads, insert-if-absent writes, bounded historical fetches) and record every
call so tests can assert on I/O counts.
"""

from collections.abc import Sequence

from kline_watcher.ingestion.ports.market_data import Subscription
from kline_watcher.shared.models import Candle, StreamEvent


def make_candle(open_time: int, close_time: int | None = None, duration: int = 10, **prices) -> Candle:
    """Candle with open_time/close_time and flat prices unless overridden."""
    if close_time is None:
        close_time = open_time + duration - 1
    values = {"open": "1.0", "high": "1.0", "low": "1.0", "close": "1.0", "volume": "2.5"}
    values.update(prices)
    return Candle(open_time=open_time, close_time=close_time, trade_num=1, **values)


def make_series(start: int, count: int, duration: int = 10) -> list[Candle]:
    return [make_candle(start + i * duration, duration=duration) for i in range(count)]


def make_event(candle: Candle, is_final: bool = True, symbol: str = "BTCUSDT") -> StreamEvent:
    return StreamEvent(
        event_time=candle.close_time, symbol=symbol, candle=candle, is_final=is_final
    )


class FakeSeriesStore:
    """In-memory SeriesStore."""

    def __init__(self, candles: Sequence[Candle] = (), symbol="BTCUSDT", interval="1m"):
        self.data: dict[tuple[str, str], dict[int, Candle]] = {}
        self.reads: list[tuple] = []
        self.writes: list[list[Candle]] = []
        self.fail_write: Exception | None = None
        self.fail_read: Exception | None = None
        for candle in candles:
            self.data.setdefault((symbol, interval), {})[candle.open_time] = candle

    async def read_range(self, symbol, interval, start, end, limit, offset=0):
        self.reads.append((symbol, interval, start, end, limit, offset))
        if self.fail_read is not None:
            raise self.fail_read
        series = self.data.get((symbol, interval), {})
        rows = sorted(
            (c for t, c in series.items() if start <= t <= end), key=lambda c: c.open_time
        )
        return rows[offset : offset + limit]

    async def write_batch(self, symbol, interval, candles):
        if self.fail_write is not None:
            raise self.fail_write
        batch = list(candles)
        self.writes.append(batch)
        series = self.data.setdefault((symbol, interval), {})
        for candle in batch:
            series.setdefault(candle.open_time, candle)
        return len(batch)

    def series(self, symbol="BTCUSDT", interval="1m") -> list[Candle]:
        return sorted(self.data.get((symbol, interval), {}).values(), key=lambda c: c.open_time)


class FakeHistoricalSource:
    """HistoricalKlinePort over a fixed list of exchange candles."""

    def __init__(self, candles: Sequence[Candle] = ()):
        self.candles = sorted(candles, key=lambda c: c.open_time)
        self.calls: list[tuple] = []
        self.fail: Exception | None = None

    async def fetch_range(self, symbol, interval, start, end, limit):
        self.calls.append((symbol, interval, start, end, limit))
        if self.fail is not None:
            raise self.fail
        return [c for c in self.candles if start <= c.open_time <= end][:limit]


class FakeLiveSource:
    """LiveKlinePort replaying prepared events and errors.

    With `keep_open=True` the subscription stays open after the prepared
    items, as a live feed would.
    """

    def __init__(self, events=(), errors=(), keep_open: bool = False):
        self.events = list(events)
        self.errors = list(errors)
        self.keep_open = keep_open
        self.subscriptions: list[Subscription] = []

    async def subscribe(self, symbol, interval):
        subscription = Subscription()
        for event in self.events:
            subscription.publish(event)
        for error in self.errors:
            subscription.report(error)
        if not self.keep_open:
            subscription.close()
        self.subscriptions.append(subscription)
        return subscription
