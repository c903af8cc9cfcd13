"""
Base adapter for market data sources.

A concrete adapter declares the ports it implements (HistoricalKlinePort,
LiveKlinePort) through `capabilities` and manages its own connection.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """
    Connection lifecycle shared by all kline sources.

    Attributes:
        venue: Where the data originates (binance, a database, ...)
        capabilities: Set of port classes this adapter implements
    """

    venue: str = "unknown"
    capabilities: set[type] = set()

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config or {}
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the data provider (idempotent)."""

    @abstractmethod
    async def close(self) -> None:
        """Close connection and clean up resources (idempotent)."""

    def supports_capability(self, port_type: type) -> bool:
        """Check if this adapter implements the given port."""
        return port_type in self.capabilities

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(venue={self.venue}, connected={self._connected})"
