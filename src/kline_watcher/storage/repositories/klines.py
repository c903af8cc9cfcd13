"""Kline repository for candle series persistence.

Implements the SeriesStore port on PostgreSQL/TimescaleDB.
Batch writes are insert-if-absent, so the collector and the gap fixer can
write overlapping ranges without corrupting stored candles.

Table Schema:
  <schema>.klines:
    - symbol: VARCHAR NOT NULL
    - timeframe: VARCHAR NOT NULL      (interval label, e.g. 1m, 1M)
    - open_time: BIGINT NOT NULL       (ms epoch)
    - close_time: BIGINT NOT NULL      (ms epoch, inclusive)
    - open, high, low, close, volume: NUMERIC
    - trade_num: BIGINT
    - PRIMARY KEY (symbol, timeframe, open_time)
"""

import logging
import re
from collections.abc import Sequence

from kline_watcher.infrastructure.database.ports import IDatabaseAdapter
from kline_watcher.shared.errors import ConfigurationError, StoreError
from kline_watcher.shared.models import Candle

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

_COLUMNS = "open_time, close_time, open, high, low, close, volume, trade_num"


class KlineRepository:
    """Repository for candle series.

    Handles persistence of klines keyed by (symbol, interval, open_time).
    """

    def __init__(self, db: IDatabaseAdapter, schema: str = "market"):
        """Initialize kline repository.

        Args:
            db: DatabaseAdapter instance for SQL execution
            schema: Schema holding the klines table

        Raises:
            ConfigurationError: If schema is not a plain lowercase identifier
        """
        if not _IDENTIFIER_RE.match(schema):
            raise ConfigurationError(f"Invalid schema name: {schema!r}")
        self.db = db
        self.table = f"{schema}.klines"
        self._schema = schema
        logger.info(f"KlineRepository initialized ({self.table})")

    async def ensure_schema(self) -> None:
        """Create schema and table if they do not exist yet."""
        query = f"""
            CREATE SCHEMA IF NOT EXISTS {self._schema};
            CREATE TABLE IF NOT EXISTS {self.table} (
                symbol VARCHAR(32) NOT NULL,
                timeframe VARCHAR(8) NOT NULL,
                open_time BIGINT NOT NULL,
                close_time BIGINT NOT NULL,
                open NUMERIC NOT NULL,
                high NUMERIC NOT NULL,
                low NUMERIC NOT NULL,
                close NUMERIC NOT NULL,
                volume NUMERIC NOT NULL,
                trade_num BIGINT NOT NULL DEFAULT 0,
                PRIMARY KEY (symbol, timeframe, open_time)
            );
        """
        try:
            await self.db.execute_query(query)
        except Exception as e:
            logger.error(f"❌ Failed to create {self.table}: {e}")
            raise StoreError(str(e), operation="init") from e

    async def write_batch(
        self, symbol: str, interval: str, candles: Sequence[Candle]
    ) -> int:
        """Insert candles in one transaction, skipping keys that already exist.

        Args:
            symbol: Trading symbol
            interval: Interval label
            candles: Candles to insert

        Returns:
            Number of candles submitted (duplicates included)
        """
        if not candles:
            return 0

        query = f"""
            INSERT INTO {self.table}
            (symbol, timeframe, {_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            ON CONFLICT (symbol, timeframe, open_time) DO NOTHING
        """
        rows = [
            (
                symbol,
                interval,
                c.open_time,
                c.close_time,
                c.open,
                c.high,
                c.low,
                c.close,
                c.volume,
                c.trade_num,
            )
            for c in candles
        ]

        try:
            await self.db.execute_many(query, rows)
        except Exception as e:
            logger.error(f"❌ Batch insert failed for {symbol}/{interval}: {e}")
            raise StoreError(str(e), operation="write", symbol=symbol, interval=interval) from e

        logger.debug(
            f"✅ Batch inserted {len(candles)} klines ({symbol}/{interval}, "
            f"{candles[0].open_time}..{candles[-1].open_time})"
        )
        return len(candles)

    async def read_range(
        self,
        symbol: str,
        interval: str,
        start: int,
        end: int,
        limit: int,
        offset: int = 0,
    ) -> list[Candle]:
        """Get klines with open_time in [start, end].

        Returns:
            List of Candle in open_time order (ASC)
        """
        query = f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            WHERE symbol = $1 AND timeframe = $2
              AND open_time >= $3 AND open_time <= $4
            ORDER BY open_time ASC
            LIMIT $5 OFFSET $6
        """

        try:
            rows = await self.db.fetch_all(
                query, symbol, interval, start, end, limit, offset
            )
        except Exception as e:
            logger.error(f"❌ Failed to read klines for {symbol}/{interval}: {e}")
            raise StoreError(str(e), operation="read", symbol=symbol, interval=interval) from e

        candles = [Candle(**row) for row in rows]
        logger.debug(f"Found {len(candles)} klines for {symbol}/{interval} from {start}")
        return candles

    async def latest(self, symbol: str, interval: str) -> Candle | None:
        """Most recent stored kline, or None for an empty series."""
        query = f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            WHERE symbol = $1 AND timeframe = $2
            ORDER BY open_time DESC
            LIMIT 1
        """
        try:
            row = await self.db.fetch_one(query, symbol, interval)
        except Exception as e:
            logger.error(f"❌ Failed to read latest kline: {e}")
            raise StoreError(str(e), operation="read", symbol=symbol, interval=interval) from e
        return Candle(**row) if row else None

    async def count(self, symbol: str, interval: str) -> int:
        """Total stored klines for symbol/interval."""
        query = f"""
            SELECT COUNT(*) AS cnt
            FROM {self.table}
            WHERE symbol = $1 AND timeframe = $2
        """
        try:
            row = await self.db.fetch_one(query, symbol, interval)
        except Exception as e:
            logger.error(f"❌ Failed to count klines: {e}")
            raise StoreError(str(e), operation="read", symbol=symbol, interval=interval) from e
        return int(row["cnt"]) if row else 0
