"""Shared pytest fixtures."""

import pytest

from kline_watcher.shared.errors import StoreError
from tests.helpers import FakeHistoricalSource, FakeSeriesStore


@pytest.fixture
def store() -> FakeSeriesStore:
    return FakeSeriesStore()


@pytest.fixture
def exchange() -> FakeHistoricalSource:
    return FakeHistoricalSource()


@pytest.fixture
def store_error() -> StoreError:
    return StoreError("connection reset", operation="write", symbol="BTCUSDT", interval="1m")
