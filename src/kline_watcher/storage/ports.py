"""Series store port.

Any store used by the collector or the gap fixer must honour:
- ascending `open_time` order on reads, re-queryable from a shifting start;
- insert-if-absent per (symbol, interval, open_time) on writes;
- all-or-nothing batches, so a failed write never leaves half a chunk visible.
"""

from collections.abc import Sequence
from typing import Protocol

from kline_watcher.shared.models import Candle


class SeriesStore(Protocol):
    """Durable, ordered candle storage."""

    async def read_range(
        self,
        symbol: str,
        interval: str,
        start: int,
        end: int,
        limit: int,
        offset: int = 0,
    ) -> list[Candle]:
        """Return candles with open_time in [start, end], ascending, at most `limit`.

        Raises:
            StoreError: operation "read"
        """
        ...

    async def write_batch(
        self, symbol: str, interval: str, candles: Sequence[Candle]
    ) -> int:
        """Insert candles whose key is absent; duplicates are ignored.

        Returns:
            Number of candles submitted

        Raises:
            StoreError: operation "write"; nothing from the batch is persisted
        """
        ...
