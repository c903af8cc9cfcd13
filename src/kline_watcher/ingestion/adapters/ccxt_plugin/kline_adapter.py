"""
CCXT kline capability adapter.

Implements HistoricalKlinePort on top of `fetch_ohlcv`. CCXT rows are
[timestamp, open, high, low, close, volume]; the close time is derived from
the timeframe and the trade count is not available.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import ccxt

from kline_watcher.ingestion.adapters.ccxt_plugin import CCXTAdapterBase
from kline_watcher.ingestion.ports.market_data import HistoricalKlinePort
from kline_watcher.shared.errors import SourceError
from kline_watcher.shared.models import Candle

logger = logging.getLogger(__name__)


class CCXTKlineSource(CCXTAdapterBase):
    """CCXT-backed historical kline source."""

    capabilities = {HistoricalKlinePort}

    def _market_symbol(self, symbol: str) -> str:
        # Accept both unified ("BTC/USDT") and exchange ids ("BTCUSDT")
        if "/" in symbol:
            return symbol
        return self.client.market(symbol)["symbol"]

    async def fetch_range(
        self, symbol: str, interval: str, start: int, end: int, limit: int
    ) -> list[Candle]:
        """Fetch up to `limit` candles opening in [start, end].

        CCXT has no explicit end parameter: rows past `end` are trimmed here.
        """
        try:
            await self.connect()
            duration_ms = int(ccxt.Exchange.parse_timeframe(interval)) * 1000
            rows = await asyncio.to_thread(
                self.client.fetch_ohlcv,
                self._market_symbol(symbol),
                interval,
                start,
                limit,
            )
        except ccxt.BaseError as exc:
            logger.error(f"❌ CCXT fetch_ohlcv failed for {symbol}/{interval}: {exc}")
            raise SourceError(
                str(exc), operation="fetch", symbol=symbol, interval=interval
            ) from exc

        try:
            candles = [
                self._to_candle(row, duration_ms) for row in rows if start <= row[0] <= end
            ]
        except (ValueError, TypeError, IndexError) as exc:
            raise SourceError(
                f"malformed OHLCV row: {exc}",
                operation="fetch",
                symbol=symbol,
                interval=interval,
            ) from exc

        logger.debug(f"Fetched {len(candles)} klines {symbol}/{interval} via {self.venue}")
        return candles

    @staticmethod
    def _to_candle(row: list[Any], duration_ms: int) -> Candle:
        open_time = int(row[0])
        return Candle(
            open_time=open_time,
            close_time=open_time + duration_ms - 1,
            open=row[1],
            high=row[2],
            low=row[3],
            close=row[4],
            volume=row[5],
            trade_num=0,
        )
