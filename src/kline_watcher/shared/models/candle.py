"""Candle (kline) domain models.

Models for:
- Candle: one closed OHLCV bucket of a series
- StreamEvent: a live feed message carrying a candle snapshot
- Gap: a derived time range with no persisted candle

All prices use DECIMAL (not float) for financial accuracy. Exchange-native
strings are parsed exactly; malformed values raise instead of turning into
zeros or NaN.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def to_decimal(value: Any) -> Decimal:
    """Convert an exchange price/quantity to Decimal without silent precision loss.

    Args:
        value: Decimal, int, float or numeric string (e.g. "43251.12000000")

    Returns:
        Finite Decimal

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # repr() keeps the shortest round-tripping form, not the binary expansion
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"Malformed decimal string: {value!r}") from e
    else:
        raise ValueError(f"Not a decimal value: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Non-finite decimal value: {value!r}")
    return result


class Candle(BaseModel):
    """One fixed-duration OHLCV bucket.

    Identity within a series is the open time; the series itself is keyed
    by (symbol, interval) outside of this record.
    """

    model_config = ConfigDict(frozen=True)

    open_time: int = Field(..., ge=0, description="Bucket open (ms epoch)")
    close_time: int = Field(..., description="Bucket close (ms epoch, inclusive)")

    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    trade_num: int = Field(default=0, ge=0, description="Trades in the bucket")

    @field_validator("open", "high", "low", "close", "volume", mode="before")
    @classmethod
    def parse_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @model_validator(mode="after")
    def check_bounds(self) -> "Candle":
        if self.close_time <= self.open_time:
            raise ValueError(
                f"close_time ({self.close_time}) must be greater than "
                f"open_time ({self.open_time})"
            )
        return self

    @property
    def duration(self) -> int:
        """Observed bucket length in milliseconds."""
        return self.close_time - self.open_time + 1


class StreamEvent(BaseModel):
    """Live feed message. Only final events carry a closed, immutable candle."""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(default="kline")
    event_time: int = Field(default=0, ge=0)
    symbol: str
    candle: Candle
    is_final: bool = Field(default=False)


@dataclass(frozen=True)
class Gap:
    """Inclusive [start, end] millisecond range with no persisted candle."""

    start: int
    end: int
