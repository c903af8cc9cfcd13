"""Common utilities."""

from .date_utils import TIME_LAYOUT, from_unix_ms, parse_cli_time, to_unix_ms, utc_now
from .intervals import IntervalUtils, validate_chunk_size, validate_interval

__all__ = [
    "TIME_LAYOUT",
    "from_unix_ms",
    "parse_cli_time",
    "to_unix_ms",
    "utc_now",
    "IntervalUtils",
    "validate_chunk_size",
    "validate_interval",
]
