"""
Date Utilities
==============

Millisecond epoch conversions and CLI time parsing. All datetimes are UTC.
"""

from datetime import UTC, datetime

from kline_watcher.shared.errors import ConfigurationError

# Layout accepted by the command line (--from / --to)
TIME_LAYOUT = "%Y-%m-%d_%H:%M:%S"


def to_unix_ms(dt: datetime) -> int:
    """
    Convert datetime to Unix timestamp in milliseconds.

    Args:
        dt: Datetime object (timezone-aware or naive assumed UTC)

    Returns:
        Unix timestamp in milliseconds
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return int(dt.timestamp() * 1000)


def from_unix_ms(timestamp_ms: int) -> datetime:
    """Convert Unix timestamp in milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_cli_time(value: str, layout: str = TIME_LAYOUT) -> datetime:
    """
    Parse a command line timestamp such as ``2017-08-17_04:00:00`` as UTC.

    Raises:
        ConfigurationError: If the value does not match the layout
    """
    try:
        return datetime.strptime(value, layout).replace(tzinfo=UTC)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid time {value!r}, expected layout {layout}"
        ) from e
