"""Tests for the candle domain models and exact decimal parsing."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from kline_watcher.shared.models import Candle, Gap, StreamEvent, to_decimal


class TestToDecimal:
    def test_exchange_string_is_exact(self):
        assert to_decimal("43251.12000000") == Decimal("43251.12000000")

    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_decimal_pass_through(self):
        assert to_decimal(5) == Decimal(5)
        assert to_decimal(Decimal("1.5")) == Decimal("1.5")

    @pytest.mark.parametrize("value", ["", "abc", "1,5", None, [], True])
    def test_malformed_values_raise(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", float("inf"), float("nan")])
    def test_non_finite_values_raise(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)


class TestCandle:
    def test_prices_are_decimal(self):
        candle = Candle(
            open_time=0,
            close_time=59_999,
            open="1.10",
            high="1.20",
            low="1.00",
            close="1.15",
            volume="10",
            trade_num=3,
        )
        assert candle.open == Decimal("1.10")
        assert isinstance(candle.volume, Decimal)
        assert candle.duration == 60_000

    def test_malformed_price_raises_instead_of_zero(self):
        with pytest.raises(ValidationError):
            Candle(open_time=0, close_time=9, open="x", high=1, low=1, close=1, volume=1)

    def test_close_must_follow_open(self):
        with pytest.raises(ValidationError):
            Candle(open_time=10, close_time=10, open=1, high=1, low=1, close=1, volume=1)

    def test_negative_open_time_rejected(self):
        with pytest.raises(ValidationError):
            Candle(open_time=-1, close_time=9, open=1, high=1, low=1, close=1, volume=1)

    def test_frozen(self):
        candle = Candle(open_time=0, close_time=9, open=1, high=1, low=1, close=1, volume=1)
        with pytest.raises(ValidationError):
            candle.open_time = 5

    def test_trade_num_defaults_to_zero(self):
        candle = Candle(open_time=0, close_time=9, open=1, high=1, low=1, close=1, volume=1)
        assert candle.trade_num == 0


class TestStreamEvent:
    def test_defaults(self):
        candle = Candle(open_time=0, close_time=9, open=1, high=1, low=1, close=1, volume=1)
        event = StreamEvent(symbol="BTCUSDT", candle=candle)
        assert event.event_type == "kline"
        assert event.is_final is False


def test_gap_equality():
    assert Gap(10, 29) == Gap(10, 29)
    assert Gap(10, 29) != Gap(10, 30)
