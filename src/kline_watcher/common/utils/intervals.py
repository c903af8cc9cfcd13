"""
Interval label validation.

Candle durations are always measured from stored data
(close_time - open_time + 1); the label is only checked for shape so that
malformed input fails before any I/O.
"""

import re

from kline_watcher.shared.errors import ConfigurationError

_INTERVAL_RE = re.compile(r"([1-9][0-9]*)([smhdwM])")


class IntervalUtils:
    @staticmethod
    def is_valid(interval: str) -> bool:
        return isinstance(interval, str) and bool(_INTERVAL_RE.fullmatch(interval))

    @staticmethod
    def validate(interval: str) -> str:
        """Return the interval unchanged or raise ConfigurationError."""
        if not IntervalUtils.is_valid(interval):
            raise ConfigurationError(
                f"Malformed interval {interval!r}: expected <count><unit>, "
                "unit one of s, m, h, d, w, M"
            )
        return interval


def validate_interval(interval: str) -> str:
    return IntervalUtils.validate(interval)


def validate_chunk_size(chunk_size: int) -> int:
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ConfigurationError(f"chunk_size must be a positive integer, got {chunk_size!r}")
    return chunk_size
