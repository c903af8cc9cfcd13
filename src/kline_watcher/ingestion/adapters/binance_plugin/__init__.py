"""Binance plugin: REST history and websocket live klines."""

from .client import BinanceKlineClient
from .mappers import candle_from_rest, candles_from_rest, stream_event_from_ws

__all__ = [
    "BinanceKlineClient",
    "candle_from_rest",
    "candles_from_rest",
    "stream_event_from_ws",
]
