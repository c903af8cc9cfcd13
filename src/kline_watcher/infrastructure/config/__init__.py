"""
Configuration exports for kline_watcher.

Usage:
    from kline_watcher.infrastructure.config import get_config
    settings = get_config("config")
"""

from .state import (
    BinanceConfig,
    CCXTConfig,
    CollectorSettings,
    ConfigLoader,
    ConfigState,
    DatabaseConfig,
    GapFixerSettings,
    LoggingConfig,
    get_config,
)

__all__ = [
    "BinanceConfig",
    "CCXTConfig",
    "CollectorSettings",
    "ConfigLoader",
    "ConfigState",
    "DatabaseConfig",
    "GapFixerSettings",
    "LoggingConfig",
    "get_config",
]
