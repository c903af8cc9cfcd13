"""
Structured logging infrastructure for kline-watcher.
Provides consistent, machine-readable logs across collector, gap fixer and CLI.

Log Structure:
    {
        "app": "kline-watcher",        # Application identifier
        "layer": "ingestion",          # Architectural layer
        "component": "stream-collector",
        "symbol": "BTCUSDT",           # Domain context
        "interval": "1m",
        "event": "chunk_flushed",      # What happened
        ...
    }

Architectural Layers:
    - infrastructure: Cross-cutting (database, config)
    - ingestion: Live collection, historical backfill, source adapters
    - pipeline: Command line runs
    - storage: Series persistence
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict

Layer = Literal["infrastructure", "ingestion", "pipeline", "storage"]


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the application identifier to every log entry."""
    event_dict["app"] = "kline-watcher"
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Add severity level for cloud logging compatibility.
    Maps Python log levels to standard severity levels.
    """
    level = event_dict.get("level")
    if level:
        severity_map = {
            "debug": "DEBUG",
            "info": "INFO",
            "warning": "WARNING",
            "error": "ERROR",
            "critical": "CRITICAL",
        }
        event_dict["severity"] = severity_map.get(level, "INFO")
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON. If False, use human-readable format (dev mode).
        include_timestamp: Whether to include ISO timestamps in logs

    Usage:
        >>> from kline_watcher.infrastructure.observability import setup_logging
        >>> setup_logging(level="DEBUG", json_logs=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.root.setLevel(log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance with architectural context.

    Args:
        name: Logger name (typically __name__ of the calling module)
        layer: Architectural layer (infrastructure, ingestion, pipeline, storage)
        component: Specific component within the layer
        **initial_context: Additional context key-value pairs to bind to logger

    Usage:
        >>> log = get_logger(__name__, layer="ingestion", component="gap-fixer")
        >>> log.info("gap_found", start=0, end=59999)
    """
    logger = structlog.get_logger(name)

    context = {}

    if layer:
        context["layer"] = layer

    if component:
        context["component"] = component

    if name:
        context["module"] = name

    context.update(initial_context)

    if context:
        logger = logger.bind(**context)

    return logger


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for the infrastructure layer (database, config).

    Usage:
        >>> log = get_infrastructure_logger("database-adapter")
        >>> log.info("pool_created", max_size=5)
    """
    return get_logger(
        "infrastructure",
        layer="infrastructure",
        component=component,
        **context,
    )


def get_ingestion_logger(
    component: str,
    exchange: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for the ingestion layer.

    Args:
        component: Component name (e.g., "stream-collector", "gap-fixer", "binance-adapter")
        exchange: Exchange name - optional
        **context: Additional context (symbol, interval, etc.)

    Usage:
        >>> log = get_ingestion_logger("stream-collector", symbol="BTCUSDT", interval="1m")
        >>> log.info("chunk_flushed", candles=50)
    """
    ctx = {}
    if exchange:
        ctx["exchange"] = exchange
    ctx.update(context)

    return get_logger(
        "ingestion",
        layer="ingestion",
        component=component,
        **ctx,
    )


def get_pipeline_logger(
    component: str = "cli",
    command: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for command runs.

    Usage:
        >>> log = get_pipeline_logger(command="fix-gaps", symbol="BTCUSDT")
        >>> log.info("command_started")
    """
    ctx = {}
    if command:
        ctx["command"] = command
    ctx.update(context)

    return get_logger(
        "pipeline",
        layer="pipeline",
        component=component,
        **ctx,
    )


def get_storage_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for the storage layer.

    Usage:
        >>> log = get_storage_logger("kline-repository", table="market.klines")
        >>> log.info("batch_inserted", records=1000)
    """
    return get_logger(
        "storage",
        layer="storage",
        component=component,
        **context,
    )
