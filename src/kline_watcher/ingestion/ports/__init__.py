"""Data ports for capability-based adapter design."""

from .market_data import HistoricalKlinePort, LiveKlinePort, Subscription

__all__ = [
    "HistoricalKlinePort",
    "LiveKlinePort",
    "Subscription",
]
