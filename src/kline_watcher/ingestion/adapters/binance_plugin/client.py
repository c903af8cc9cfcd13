"""Binance spot kline client over aiohttp.

Historical data comes from the REST endpoint `/api/v3/klines`; live data from
the `<symbol>@kline_<interval>` websocket stream. The client does not retry or
reconnect: a failed request raises SourceError and a closed socket ends the
subscription.
"""

from __future__ import annotations

import asyncio
import json
import logging

import aiohttp

from kline_watcher.infrastructure.config.state import BinanceConfig
from kline_watcher.ingestion.adapters.base import BaseAdapter
from kline_watcher.ingestion.adapters.binance_plugin.mappers import (
    candles_from_rest,
    stream_event_from_ws,
)
from kline_watcher.ingestion.ports.market_data import (
    HistoricalKlinePort,
    LiveKlinePort,
    Subscription,
)
from kline_watcher.shared.errors import ConfigurationError, FeedError, SourceError
from kline_watcher.shared.models import Candle

logger = logging.getLogger(__name__)

KLINES_PATH = "/api/v3/klines"


class BinanceKlineClient(BaseAdapter):
    """Binance kline source implementing both historical and live ports."""

    venue = "binance"
    capabilities = {HistoricalKlinePort, LiveKlinePort}

    def __init__(
        self,
        config: BinanceConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__()
        self.settings = config or BinanceConfig()
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        if self._connected:
            return
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        self._connected = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
        self._connected = False

    async def fetch_range(
        self, symbol: str, interval: str, start: int, end: int, limit: int
    ) -> list[Candle]:
        """
        Fetch up to `limit` klines with open time in [start, end].

        Raises:
            ConfigurationError: limit above the exchange maximum (a capped page
                would look like an exhausted range)
            SourceError: transport failure, HTTP status >= 400, bad payload
        """
        if limit > self.settings.max_limit:
            raise ConfigurationError(
                f"limit {limit} exceeds Binance maximum {self.settings.max_limit}"
            )
        await self.connect()

        params = {
            "symbol": symbol.upper(),
            "interval": interval,
            "startTime": start,
            "endTime": end,
            "limit": limit,
        }
        url = f"{self.settings.api_url.rstrip('/')}{KLINES_PATH}"

        try:
            async with self._session.get(url, params=params) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    logger.error(f"❌ Binance klines HTTP {resp.status}: {text}")
                    raise SourceError(
                        f"HTTP {resp.status}: {text}",
                        operation="fetch",
                        symbol=symbol,
                        interval=interval,
                        status_code=resp.status,
                    )
                rows = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error(f"❌ Binance klines request failed: {exc}")
            raise SourceError(
                str(exc) or type(exc).__name__,
                operation="fetch",
                symbol=symbol,
                interval=interval,
            ) from exc

        try:
            candles = candles_from_rest(rows)
        except ValueError as exc:
            raise SourceError(
                f"malformed payload: {exc}",
                operation="fetch",
                symbol=symbol,
                interval=interval,
            ) from exc

        logger.debug(f"Fetched {len(candles)} klines {symbol}/{interval} from {start}")
        return candles

    async def subscribe(self, symbol: str, interval: str) -> Subscription:
        """
        Open the kline websocket for symbol/interval.

        Malformed messages and socket errors are reported on the subscription's
        error stream; the event stream ends when the socket closes.

        Raises:
            SourceError: the websocket could not be opened
        """
        await self.connect()
        url = f"{self.settings.ws_url.rstrip('/')}/ws/{symbol.lower()}@kline_{interval}"

        try:
            ws = await self._session.ws_connect(url, heartbeat=self.settings.heartbeat)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error(f"❌ Binance websocket connect failed: {exc}")
            raise SourceError(
                str(exc) or type(exc).__name__,
                operation="subscribe",
                symbol=symbol,
                interval=interval,
            ) from exc

        logger.info(f"🔌 Subscribed to {url}")
        subscription = Subscription()
        subscription.attach(
            asyncio.create_task(
                self._pump(ws, subscription), name=f"binance-ws-{symbol}-{interval}"
            )
        )
        return subscription

    async def _pump(
        self, ws: aiohttp.ClientWebSocketResponse, subscription: Subscription
    ) -> None:
        try:
            async for msg in ws:
                if subscription.closed:
                    break
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        event = stream_event_from_ws(json.loads(msg.data))
                    except ValueError as exc:
                        subscription.report(FeedError(f"malformed kline message: {exc}"))
                        continue
                    subscription.publish(event)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    subscription.report(FeedError(f"websocket error: {ws.exception()}"))
                    break
        except aiohttp.ClientError as exc:
            if not subscription.closed:
                subscription.report(FeedError(f"websocket failure: {exc}"))
        finally:
            await ws.close()
            subscription.close()
            logger.info("🔌 Binance websocket closed")
