"""Kline source adapters."""

from .base import BaseAdapter
from .binance_plugin import BinanceKlineClient
from .ccxt_plugin import CCXTAdapterBase, CCXTKlineSource, create_ccxt_client
from .replay import StoreReplaySource

__all__ = [
    "BaseAdapter",
    "BinanceKlineClient",
    "CCXTAdapterBase",
    "CCXTKlineSource",
    "StoreReplaySource",
    "create_ccxt_client",
]
