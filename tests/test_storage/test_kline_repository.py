"""Tests for KlineRepository against a mocked database adapter."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from kline_watcher.shared.errors import ConfigurationError, StoreError
from kline_watcher.storage import KlineRepository
from tests.helpers import make_candle


@pytest.fixture
def db():
    adapter = AsyncMock()
    adapter.fetch_all.return_value = []
    adapter.fetch_one.return_value = None
    return adapter


@pytest.fixture
def repo(db):
    return KlineRepository(db, schema="market")


def row(open_time: int) -> dict:
    return {
        "open_time": open_time,
        "close_time": open_time + 59_999,
        "open": Decimal("1.5"),
        "high": Decimal("2"),
        "low": Decimal("1"),
        "close": Decimal("1.75"),
        "volume": Decimal("100.25"),
        "trade_num": 7,
    }


def test_rejects_unsafe_schema_name(db):
    with pytest.raises(ConfigurationError):
        KlineRepository(db, schema="market; DROP TABLE x")


@pytest.mark.asyncio
async def test_ensure_schema_creates_table(repo, db):
    await repo.ensure_schema()

    query = db.execute_query.await_args.args[0]
    assert "CREATE SCHEMA IF NOT EXISTS market" in query
    assert "CREATE TABLE IF NOT EXISTS market.klines" in query
    assert "PRIMARY KEY (symbol, timeframe, open_time)" in query


@pytest.mark.asyncio
async def test_write_batch_is_one_insert_if_absent_call(repo, db):
    candles = [make_candle(0, duration=60_000), make_candle(60_000, duration=60_000)]

    written = await repo.write_batch("BTCUSDT", "1m", candles)

    assert written == 2
    db.execute_many.assert_awaited_once()
    query, rows = db.execute_many.await_args.args
    assert "INSERT INTO market.klines" in query
    assert "ON CONFLICT (symbol, timeframe, open_time) DO NOTHING" in query
    assert rows[0][:4] == ("BTCUSDT", "1m", 0, 59_999)
    assert rows[1][2] == 60_000
    assert isinstance(rows[0][4], Decimal)


@pytest.mark.asyncio
async def test_empty_batch_skips_database(repo, db):
    assert await repo.write_batch("BTCUSDT", "1m", []) == 0
    db.execute_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_write_failure_becomes_store_error(repo, db):
    db.execute_many.side_effect = OSError("connection reset")

    with pytest.raises(StoreError) as exc_info:
        await repo.write_batch("BTCUSDT", "1m", [make_candle(0)])
    assert exc_info.value.operation == "write"
    assert exc_info.value.symbol == "BTCUSDT"


@pytest.mark.asyncio
async def test_read_range_query_and_mapping(repo, db):
    db.fetch_all.return_value = [row(0), row(60_000)]

    candles = await repo.read_range("BTCUSDT", "1m", 0, 120_000, limit=100, offset=5)

    query, *params = db.fetch_all.await_args.args
    assert "ORDER BY open_time ASC" in query
    assert "LIMIT $5 OFFSET $6" in query
    assert params == ["BTCUSDT", "1m", 0, 120_000, 100, 5]
    assert [c.open_time for c in candles] == [0, 60_000]
    assert candles[0].volume == Decimal("100.25")
    assert candles[0].trade_num == 7


@pytest.mark.asyncio
async def test_read_failure_becomes_store_error(repo, db):
    db.fetch_all.side_effect = OSError("timeout")

    with pytest.raises(StoreError) as exc_info:
        await repo.read_range("BTCUSDT", "1m", 0, 10, limit=5)
    assert exc_info.value.operation == "read"


@pytest.mark.asyncio
async def test_latest_and_count(repo, db):
    assert await repo.latest("BTCUSDT", "1m") is None
    assert await repo.count("BTCUSDT", "1m") == 0

    db.fetch_one.return_value = row(120_000)
    assert (await repo.latest("BTCUSDT", "1m")).open_time == 120_000

    db.fetch_one.return_value = {"cnt": 42}
    assert await repo.count("BTCUSDT", "1m") == 42
