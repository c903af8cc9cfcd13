"""
Store replay source.

Serves klines already persisted in a SeriesStore through both source ports:
historical queries read the store directly, and a live subscription replays
stored candles from `start_time` onwards as final events, then ends. Useful
for dry runs of the collector against recorded data.
"""

from __future__ import annotations

import asyncio
import logging

from kline_watcher.ingestion.adapters.base import BaseAdapter
from kline_watcher.ingestion.ports.market_data import (
    HistoricalKlinePort,
    LiveKlinePort,
    Subscription,
)
from kline_watcher.shared.models import Candle, StreamEvent
from kline_watcher.storage.ports import SeriesStore

logger = logging.getLogger(__name__)

# Largest open time a BIGINT column can hold
MAX_OPEN_TIME = 2**63 - 1


class StoreReplaySource(BaseAdapter):
    """Kline source backed by a series store."""

    venue = "store"
    capabilities = {HistoricalKlinePort, LiveKlinePort}

    def __init__(self, store: SeriesStore, start_time: int = 0, page_size: int = 1000):
        super().__init__()
        self.store = store
        self.start_time = start_time
        self.page_size = page_size

    async def connect(self) -> None:
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    async def fetch_range(
        self, symbol: str, interval: str, start: int, end: int, limit: int
    ) -> list[Candle]:
        return await self.store.read_range(symbol, interval, start, end, limit=limit)

    async def subscribe(self, symbol: str, interval: str) -> Subscription:
        """
        Replay stored candles as final events.

        The first page is read before returning, so an unreadable store fails
        the subscribe call itself; later read failures go to the error stream.
        """
        first_page = await self.store.read_range(
            symbol, interval, self.start_time, MAX_OPEN_TIME, limit=self.page_size
        )
        subscription = Subscription()
        subscription.attach(
            asyncio.create_task(
                self._replay(symbol, interval, first_page, subscription),
                name=f"replay-{symbol}-{interval}",
            )
        )
        logger.info(f"▶️ Replaying {symbol}/{interval} from {self.start_time}")
        return subscription

    async def _replay(
        self,
        symbol: str,
        interval: str,
        page: list[Candle],
        subscription: Subscription,
    ) -> None:
        try:
            while page:
                for candle in page:
                    subscription.publish(
                        StreamEvent(
                            event_type="replay",
                            event_time=candle.open_time,
                            symbol=symbol,
                            candle=candle,
                            is_final=True,
                        )
                    )
                    # Let the consumer run between events
                    await asyncio.sleep(0)
                if len(page) < self.page_size:
                    break
                page = await self.store.read_range(
                    symbol,
                    interval,
                    page[-1].close_time + 1,
                    MAX_OPEN_TIME,
                    limit=self.page_size,
                )
        except Exception as exc:
            logger.error(f"❌ Replay of {symbol}/{interval} failed: {exc}")
            if not subscription.closed:
                subscription.report(exc)
        finally:
            subscription.close()
