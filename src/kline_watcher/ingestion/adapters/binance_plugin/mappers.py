"""
Payload mapping for the Binance spot kline API.

REST `/api/v3/klines` rows are positional arrays:
    [open_time, open, high, low, close, volume, close_time,
     quote_volume, trade_num, taker_base, taker_quote, ignore]

Websocket kline events are objects; the kline itself sits under "k":
    {"e": "kline", "E": 1672515782136, "s": "BNBBTC",
     "k": {"t": ..., "T": ..., "o": "...", "h": "...", "l": "...", "c": "...",
           "v": "...", "n": 100, "x": false, ...}}

Numbers arrive as strings and are parsed into Decimal; a malformed value
raises instead of becoming zero.
"""

from __future__ import annotations

from typing import Any

from kline_watcher.shared.models import Candle, StreamEvent

REST_ROW_MIN_LENGTH = 9


def candle_from_rest(row: list[Any]) -> Candle:
    """Map one REST kline row to a Candle."""
    if not isinstance(row, (list, tuple)) or len(row) < REST_ROW_MIN_LENGTH:
        raise ValueError(f"Malformed kline row: {row!r}")
    return Candle(
        open_time=int(row[0]),
        open=row[1],
        high=row[2],
        low=row[3],
        close=row[4],
        volume=row[5],
        close_time=int(row[6]),
        trade_num=int(row[8]),
    )


def candles_from_rest(rows: list[list[Any]]) -> list[Candle]:
    if not isinstance(rows, list):
        raise ValueError(f"Expected a list of klines, got {type(rows).__name__}")
    return [candle_from_rest(row) for row in rows]


def stream_event_from_ws(payload: dict[str, Any]) -> StreamEvent:
    """Map one websocket kline message to a StreamEvent.

    Combined-stream messages ({"stream": ..., "data": {...}}) are unwrapped.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Message is not a JSON object: {payload!r}")
    if "data" in payload and isinstance(payload["data"], dict):
        payload = payload["data"]

    kline = payload.get("k")
    if not isinstance(kline, dict):
        raise ValueError(f"Message carries no kline: {payload!r}")

    try:
        candle = Candle(
            open_time=int(kline["t"]),
            close_time=int(kline["T"]),
            open=kline["o"],
            high=kline["h"],
            low=kline["l"],
            close=kline["c"],
            volume=kline["v"],
            trade_num=int(kline.get("n", 0)),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Kline field missing or malformed: {exc}") from exc

    return StreamEvent(
        event_type=payload.get("e", "kline"),
        event_time=int(payload.get("E", 0)),
        symbol=payload.get("s") or kline.get("s", ""),
        candle=candle,
        is_final=bool(kline.get("x", False)),
    )
