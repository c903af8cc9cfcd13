"""
Page-local gap detection.

Gaps are inferred only from contiguity of the candles in one page; no gap
ledger is kept, so detection can be re-run at any time against the current
state of the store.

Known limitation: the candle duration is taken from the first candle of the
page. A page mixing durations (e.g. around exchange outages) can make the
fast path report no gaps for a mismatched chunk.
"""

from collections.abc import Sequence

from kline_watcher.shared.models import Candle, Gap


def is_contiguous_full_page(
    klines: Sequence[Candle], from_ms: int, chunk_size: int
) -> bool:
    """True for a full page starting at `from_ms` that spans exactly chunk_size buckets."""
    if len(klines) != chunk_size or not klines:
        return False
    duration = klines[0].duration
    return (
        klines[0].open_time == from_ms
        and klines[-1].close_time == from_ms + duration * chunk_size - 1
    )


def find_gaps(
    klines: Sequence[Candle], from_ms: int, to_ms: int, chunk_size: int
) -> list[Gap]:
    """
    Find missing ranges in one ascending page of stored candles.

    Args:
        klines: Page read from the store for [from_ms, to_ms]
        from_ms: Logical start of the page
        to_ms: Logical end of the scanned window
        chunk_size: Page size the store was asked for

    Returns:
        Gaps in increasing time order. A trailing gap is reported only for a
        short page (the store has nothing after it) and only when more than
        the boundary instant `to_ms` is missing.
    """
    if not klines:
        return [Gap(from_ms, to_ms)]

    if is_contiguous_full_page(klines, from_ms, chunk_size):
        return []

    gaps: list[Gap] = []

    first = klines[0]
    if first.open_time > from_ms:
        gaps.append(Gap(from_ms, first.open_time - 1))

    # overlapping neighbours (close + 1 > next open) leave nothing to fill
    for left, right in zip(klines, klines[1:]):
        if left.close_time + 1 < right.open_time:
            gaps.append(Gap(left.close_time + 1, right.open_time - 1))

    last = klines[-1]
    if len(klines) < chunk_size and last.close_time + 1 < to_ms:
        gaps.append(Gap(last.close_time + 1, to_ms))

    return gaps
