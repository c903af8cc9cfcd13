"""
Observability for kline-watcher: structured logging shared by the collector,
the gap fixer, the source adapters and the command line.
"""

from .logging import (
    get_infrastructure_logger,
    get_ingestion_logger,
    get_logger,
    get_pipeline_logger,
    get_storage_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_infrastructure_logger",
    "get_ingestion_logger",
    "get_pipeline_logger",
    "get_storage_logger",
]
