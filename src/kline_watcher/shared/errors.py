"""
Kline Watcher Exception Hierarchy

Provides specific exception types for each failure phase (configuration,
store read/write, historical fetch, live feed, cancellation), enabling callers
to tell which phase of a run failed.
"""

from collections.abc import Sequence


class KlineWatcherError(Exception):
    """Base exception for all kline watcher errors."""


class ConfigurationError(KlineWatcherError):
    """Invalid configuration (interval, chunk size, time window). Raised before any I/O."""


class StoreError(KlineWatcherError):
    """Series store read or write failed."""

    def __init__(
        self,
        message: str,
        operation: str,
        symbol: str | None = None,
        interval: str | None = None,
    ):
        target = f"klines {symbol}/{interval}" if symbol else "klines"
        super().__init__(f"{operation} {target}: {message}")
        self.operation = operation
        self.symbol = symbol
        self.interval = interval


class SourceError(KlineWatcherError):
    """Market data source request failed (historical fetch or subscribe)."""

    def __init__(
        self,
        message: str,
        operation: str,
        symbol: str | None = None,
        interval: str | None = None,
        status_code: int | None = None,
    ):
        target = f"klines {symbol}/{interval}" if symbol else "klines"
        super().__init__(f"{operation} {target}: {message}")
        self.operation = operation
        self.symbol = symbol
        self.interval = interval
        self.status_code = status_code


class FeedError(KlineWatcherError):
    """Live feed transport or decoding problem. Reported, never fatal."""


class CollectionCancelled(KlineWatcherError):
    """Stream collection stopped by the cancellation signal."""


class GapFixCancelled(KlineWatcherError):
    """Gap reconciliation stopped by the cancellation signal."""


class AggregateError(KlineWatcherError):
    """Several failures of one operation, kept in the order they happened."""

    def __init__(self, causes: Sequence[BaseException]):
        self.causes = tuple(causes)
        super().__init__(
            "; ".join(f"{type(c).__name__}: {c}" for c in self.causes)
        )
