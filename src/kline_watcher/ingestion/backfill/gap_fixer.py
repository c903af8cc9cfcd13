"""
Gap Fixer
Scans a stored series page by page and backfills missing ranges from a
historical source.

State machine (nothing is persisted between runs):
    SCANNING -> BACKFILLING -> SCANNING -> ... -> DONE | FAILED

Re-running is the recovery path after a failure: gaps are recomputed from the
store each time and writes are insert-if-absent.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from kline_watcher.common.utils.date_utils import to_unix_ms
from kline_watcher.common.utils.intervals import validate_chunk_size, validate_interval
from kline_watcher.infrastructure.observability import get_ingestion_logger
from kline_watcher.ingestion.backfill.gap_detector import find_gaps
from kline_watcher.ingestion.ports.market_data import HistoricalKlinePort
from kline_watcher.shared.errors import ConfigurationError, GapFixCancelled, SourceError
from kline_watcher.shared.models import Gap
from kline_watcher.storage.ports import SeriesStore


class EngineState(str, Enum):
    SCANNING = "scanning"
    BACKFILLING = "backfilling"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GapFixReport:
    """Result of a gap fixing run."""

    symbol: str
    interval: str
    from_ms: int
    to_ms: int
    pages_scanned: int = 0
    gaps_found: int = 0
    fetches: int = 0
    candles_written: int = 0
    state: EngineState = EngineState.SCANNING


class GapFixer:
    """
    Detects and repairs gaps in one stored series.

    Responsibilities:
    - Page through the store from a moving cursor
    - Derive gaps from each page (see gap_detector.find_gaps)
    - Backfill every gap in chunks from the historical source
    - NOT responsible for: retries, gap bookkeeping, live ingestion
    """

    def __init__(
        self,
        source: HistoricalKlinePort,
        store: SeriesStore,
        chunk_size: int,
        stop_event: asyncio.Event | None = None,
    ):
        """
        Args:
            source: Historical kline source used for backfill
            store: Series store scanned and written to
            chunk_size: Page size for store reads and source fetches
            stop_event: Cooperative cancellation, checked between pages and gaps
        """
        self.source = source
        self.store = store
        self.chunk_size = validate_chunk_size(chunk_size)
        self.stop_event = stop_event

    async def run(
        self,
        symbol: str,
        interval: str,
        from_ms: int | datetime,
        to_ms: int | datetime,
    ) -> GapFixReport:
        """
        Fix every gap of symbol/interval inside [from_ms, to_ms].

        Raises:
            ConfigurationError: malformed interval or empty window (before any I/O)
            StoreError: store read or write failed
            SourceError: historical fetch failed
            GapFixCancelled: stop_event was set
        """
        validate_interval(interval)
        from_ms = to_unix_ms(from_ms) if isinstance(from_ms, datetime) else from_ms
        to_ms = to_unix_ms(to_ms) if isinstance(to_ms, datetime) else to_ms
        if from_ms >= to_ms:
            raise ConfigurationError(f"Empty window: from={from_ms} to={to_ms}")

        report = GapFixReport(symbol=symbol, interval=interval, from_ms=from_ms, to_ms=to_ms)
        log = get_ingestion_logger("gap-fixer", symbol=symbol, interval=interval)
        log.info("gap_fix_started", from_ms=from_ms, to_ms=to_ms, chunk_size=self.chunk_size)

        try:
            await self._scan(symbol, interval, from_ms, to_ms, report, log)
        except BaseException as exc:
            report.state = EngineState.FAILED
            log.error(
                "gap_fix_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                pages=report.pages_scanned,
                candles_written=report.candles_written,
            )
            raise

        report.state = EngineState.DONE
        log.info(
            "gap_fix_done",
            pages=report.pages_scanned,
            gaps=report.gaps_found,
            fetches=report.fetches,
            candles_written=report.candles_written,
        )
        return report

    async def _scan(self, symbol, interval, from_ms, to_ms, report, log) -> None:
        open_cursor = from_ms
        while open_cursor < to_ms:
            self._check_stop(symbol, interval)
            report.state = EngineState.SCANNING

            klines = await self.store.read_range(
                symbol, interval, open_cursor, to_ms, limit=self.chunk_size
            )
            report.pages_scanned += 1

            gaps = find_gaps(klines, open_cursor, to_ms, self.chunk_size)
            report.gaps_found += len(gaps)
            log.debug("page_scanned", cursor=open_cursor, klines=len(klines), gaps=len(gaps))

            for gap in gaps:
                self._check_stop(symbol, interval)
                report.state = EngineState.BACKFILLING
                log.info("gap_found", start=gap.start, end=gap.end)
                await self.backfill_gap(symbol, interval, gap, report)
            report.state = EngineState.SCANNING

            if len(klines) < self.chunk_size:
                return
            open_cursor = klines[-1].close_time + 1

    async def backfill_gap(
        self, symbol: str, interval: str, gap: Gap, report: GapFixReport | None = None
    ) -> int:
        """
        Fill one gap from the historical source.

        Stops when the source returns nothing (no data for the range) or a short
        page (range exhausted). Returns the number of candles written.
        """
        start, end = gap.start, gap.end
        written = 0
        while start < end:
            candles = await self.source.fetch_range(
                symbol, interval, start, end, self.chunk_size
            )
            if report is not None:
                report.fetches += 1
            if not candles:
                break

            count = await self.store.write_batch(symbol, interval, candles)
            written += count
            if report is not None:
                report.candles_written += count

            if len(candles) < self.chunk_size:
                break

            next_start = candles[-1].close_time + 1
            if next_start <= start:
                raise SourceError(
                    f"source did not advance past {start}",
                    operation="fetch",
                    symbol=symbol,
                    interval=interval,
                )
            start = next_start
        return written

    def _check_stop(self, symbol: str, interval: str) -> None:
        if self.stop_event is not None and self.stop_event.is_set():
            raise GapFixCancelled(f"gap fixing of {symbol}/{interval} cancelled")


async def fix_gaps(
    source: HistoricalKlinePort,
    store: SeriesStore,
    symbol: str,
    interval: str,
    from_ms: int | datetime,
    to_ms: int | datetime,
    chunk_size: int,
    stop_event: asyncio.Event | None = None,
) -> GapFixReport:
    """Run a GapFixer once over [from_ms, to_ms]; see GapFixer.run."""
    fixer = GapFixer(source, store, chunk_size, stop_event=stop_event)
    return await fixer.run(symbol, interval, from_ms, to_ms)
