"""Tests for interval and chunk size validation."""

import pytest

from kline_watcher.common.utils import IntervalUtils, validate_chunk_size, validate_interval
from kline_watcher.shared.errors import ConfigurationError


@pytest.mark.parametrize("interval", ["1s", "1m", "15m", "4h", "1d", "1w", "1M"])
def test_valid_intervals(interval):
    assert IntervalUtils.is_valid(interval)
    assert validate_interval(interval) == interval


@pytest.mark.parametrize("interval", ["", "m", "0m", "1", "1x", "01m", " 1m", "1m\n", None, 60])
def test_malformed_intervals(interval):
    assert not IntervalUtils.is_valid(interval)
    with pytest.raises(ConfigurationError):
        validate_interval(interval)


@pytest.mark.parametrize("chunk_size", [1, 50, 1000])
def test_valid_chunk_sizes(chunk_size):
    assert validate_chunk_size(chunk_size) == chunk_size


@pytest.mark.parametrize("chunk_size", [0, -1, 1.5, "10", True, None])
def test_invalid_chunk_sizes(chunk_size):
    with pytest.raises(ConfigurationError):
        validate_chunk_size(chunk_size)
