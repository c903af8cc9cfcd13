"""Shared domain models."""

from kline_watcher.shared.models.candle import Candle, Gap, StreamEvent, to_decimal

__all__ = [
    "Candle",
    "Gap",
    "StreamEvent",
    "to_decimal",
]
