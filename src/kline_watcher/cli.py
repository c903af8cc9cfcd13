#!/usr/bin/env python3
"""
kline-watcher command line.

    kline-watcher collect  --symbol BTCUSDT --interval 1m --chunk-size 50
    kline-watcher fix-gaps --symbol BTCUSDT --interval 1m \\
        --from 2017-08-17_04:00:00 --to 2024-01-01_00:00:00 --chunk-size 100

Unset flags fall back to the YAML configuration (see config/). SIGINT and
SIGTERM stop a run cooperatively: the collector flushes its partial chunk and
the gap fixer stops between pages.

Exit codes: 0 success, 1 failure, 130 cancelled.
"""

import argparse
import asyncio
import contextlib
import signal
import sys
from collections.abc import Sequence

from kline_watcher.common.utils.date_utils import (
    TIME_LAYOUT,
    from_unix_ms,
    parse_cli_time,
    to_unix_ms,
    utc_now,
)
from kline_watcher.common.utils.intervals import validate_chunk_size, validate_interval
from kline_watcher.infrastructure.config import ConfigState, get_config
from kline_watcher.infrastructure.database import DatabaseAdapter
from kline_watcher.infrastructure.observability import get_pipeline_logger, setup_logging
from kline_watcher.ingestion.adapters import (
    BinanceKlineClient,
    CCXTKlineSource,
    StoreReplaySource,
    create_ccxt_client,
)
from kline_watcher.ingestion.backfill import fix_gaps
from kline_watcher.ingestion.ports import HistoricalKlinePort
from kline_watcher.ingestion.stream import CollectorConfig, collect
from kline_watcher.shared.errors import (
    CollectionCancelled,
    ConfigurationError,
    GapFixCancelled,
    KlineWatcherError,
)
from kline_watcher.storage import KlineRepository

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--conn-str", help="PostgreSQL DSN (overrides database.url)")
    common.add_argument("--symbol", help="Instrument symbol, e.g. BTCUSDT")
    common.add_argument("--interval", help="Kline interval, e.g. 1m, 4h, 1d")
    common.add_argument("--chunk-size", type=int, help="Candles per batch / page")
    common.add_argument("--config-dir", help="Directory holding the YAML configuration")
    common.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    logs = common.add_mutually_exclusive_group()
    logs.add_argument(
        "--json-logs", dest="json_logs", action="store_true", default=None,
        help="Emit JSON log lines",
    )
    logs.add_argument(
        "--console-logs", dest="json_logs", action="store_false",
        help="Emit human readable log lines",
    )

    parser = argparse.ArgumentParser(
        prog="kline-watcher",
        description="Collect live klines and repair gaps in stored history",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    collect_cmd = sub.add_parser(
        "collect", parents=[common], help="Persist final klines from the live stream"
    )
    collect_cmd.add_argument(
        "--debug", action="store_true", default=None, help="Log every flushed chunk"
    )
    collect_cmd.add_argument(
        "--no-flush-on-close",
        dest="flush_on_close",
        action="store_false",
        default=None,
        help="Drop the trailing partial chunk when the stream ends",
    )
    collect_cmd.add_argument(
        "--replay-from",
        metavar="TIME",
        help=f"Replay stored klines from TIME ({TIME_LAYOUT}) instead of Binance",
    )
    collect_cmd.add_argument(
        "--replay-conn-str", help="DSN of the store to replay from (defaults to --conn-str)"
    )
    collect_cmd.add_argument(
        "--replay-schema",
        help="Schema of the store to replay from (defaults to database.schema_name)",
    )

    fix_cmd = sub.add_parser(
        "fix-gaps", parents=[common], help="Backfill missing ranges of a stored series"
    )
    fix_cmd.add_argument("--from", dest="from_time", help=f"Window start ({TIME_LAYOUT}, UTC)")
    fix_cmd.add_argument(
        "--to", dest="to_time", help=f"Window end ({TIME_LAYOUT}, UTC); defaults to now"
    )
    fix_cmd.add_argument(
        "--source", choices=("binance", "ccxt"), help="Historical kline source"
    )
    return parser


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)


def _database(config: ConfigState, conn_str: str | None = None) -> DatabaseAdapter:
    db_config = config.database
    if conn_str:
        db_config = db_config.model_copy(update={"url": conn_str})
    return DatabaseAdapter(db_config)


def _replay_target(
    args: argparse.Namespace, config: ConfigState
) -> tuple[str, str]:
    """DSN and schema the replay source reads from; must not be the write target."""
    target = (args.conn_str or config.database.url, config.database.schema_name)
    replay = (
        args.replay_conn_str or target[0],
        args.replay_schema or target[1],
    )
    if replay == target:
        raise ConfigurationError(
            "--replay-from needs a different store to read from: "
            "set --replay-conn-str or --replay-schema"
        )
    return replay


async def run_collect(args: argparse.Namespace, config: ConfigState) -> int:
    settings = config.collector
    collector_config = CollectorConfig(
        symbol=args.symbol or settings.symbol,
        interval=args.interval or settings.interval,
        chunk_size=args.chunk_size if args.chunk_size is not None else settings.chunk_size,
        debug=settings.debug if args.debug is None else args.debug,
        flush_on_close=(
            settings.flush_on_close if args.flush_on_close is None else args.flush_on_close
        ),
    )
    replay_from = parse_cli_time(args.replay_from) if args.replay_from else None
    replay_conn_str, replay_schema = (
        _replay_target(args, config) if replay_from is not None else (None, None)
    )
    log = get_pipeline_logger(
        command="collect", symbol=collector_config.symbol, interval=collector_config.interval
    )

    stop_event = asyncio.Event()
    _install_stop_handlers(stop_event)

    async with contextlib.AsyncExitStack() as stack:
        db = await stack.enter_async_context(_database(config, args.conn_str))
        repository = KlineRepository(db, schema=config.database.schema_name)
        await repository.ensure_schema()

        last = await repository.latest(collector_config.symbol, collector_config.interval)
        if last is not None:
            log.info("stored_series_found", last_open=from_unix_ms(last.open_time).isoformat())

        if replay_from is not None:
            replay_db = await stack.enter_async_context(_database(config, replay_conn_str))
            source = StoreReplaySource(
                KlineRepository(replay_db, schema=replay_schema),
                start_time=to_unix_ms(replay_from),
            )
        else:
            source = BinanceKlineClient(config.binance)

        log.info("command_started", source=source.venue, chunk_size=collector_config.chunk_size)
        try:
            async with source:
                result = await collect(source, repository, collector_config, stop_event)
        except CollectionCancelled:
            log.warning("command_cancelled")
            return EXIT_CANCELLED

    log.info(
        "command_finished",
        events=result.events_seen,
        batches=result.batches_written,
        candles=result.candles_written,
        feed_errors=result.feed_errors,
    )
    return EXIT_OK


async def run_fix_gaps(args: argparse.Namespace, config: ConfigState) -> int:
    settings = config.gap_fixer
    symbol = args.symbol or settings.symbol
    interval = validate_interval(args.interval or settings.interval)
    chunk_size = validate_chunk_size(
        args.chunk_size if args.chunk_size is not None else settings.chunk_size
    )
    source_name = args.source or settings.source
    from_ms = to_unix_ms(parse_cli_time(args.from_time or settings.from_time))
    to_ms = to_unix_ms(parse_cli_time(args.to_time) if args.to_time else utc_now())
    if from_ms >= to_ms:
        raise ConfigurationError(f"Empty window: from={from_ms} to={to_ms}")
    if source_name == "binance" and chunk_size > config.binance.max_limit:
        raise ConfigurationError(
            f"chunk_size {chunk_size} exceeds the Binance page limit {config.binance.max_limit}"
        )
    log = get_pipeline_logger(command="fix-gaps", symbol=symbol, interval=interval)

    stop_event = asyncio.Event()
    _install_stop_handlers(stop_event)

    if source_name == "ccxt":
        source = CCXTKlineSource(create_ccxt_client(config.ccxt))
    else:
        source = BinanceKlineClient(config.binance)
    if not source.supports_capability(HistoricalKlinePort):
        raise ConfigurationError(f"Source {source.venue} has no historical klines")

    async with _database(config, args.conn_str) as db:
        repository = KlineRepository(db, schema=config.database.schema_name)
        await repository.ensure_schema()

        log.info("command_started", source=source_name, from_ms=from_ms, to_ms=to_ms)
        try:
            async with source:
                report = await fix_gaps(
                    source,
                    repository,
                    symbol,
                    interval,
                    from_ms,
                    to_ms,
                    chunk_size,
                    stop_event=stop_event,
                )
        except GapFixCancelled:
            log.warning("command_cancelled")
            return EXIT_CANCELLED

        stored = await repository.count(symbol, interval)

    log.info(
        "command_finished",
        pages=report.pages_scanned,
        gaps=report.gaps_found,
        candles_written=report.candles_written,
        stored=stored,
    )
    return EXIT_OK




COMMANDS = {
    "collect": run_collect,
    "fix-gaps": run_fix_gaps,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = get_config(args.config_dir)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(
        level=args.log_level or config.logging.level,
        json_logs=config.logging.json_logs if args.json_logs is None else args.json_logs,
    )
    log = get_pipeline_logger(command=args.command)

    try:
        return asyncio.run(COMMANDS[args.command](args, config))
    except KlineWatcherError as e:
        log.error("command_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        log.warning("command_interrupted")
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
