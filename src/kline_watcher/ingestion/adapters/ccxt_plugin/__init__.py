"""
CCXT plugin adapters.

CCXT is used as a plugin rather than a core dependency of the engine: the
kline source built on it only implements the historical port.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from kline_watcher.ingestion.adapters.base import BaseAdapter

logger = logging.getLogger(__name__)


class CCXTAdapterBase(BaseAdapter):
    """Base class for CCXT-backed adapters used as plugins."""

    def __init__(self, client: Any, config: dict[str, Any] | None = None):
        super().__init__(config)
        self.client = client
        self.venue = getattr(client, "id", "ccxt")

    async def connect(self) -> None:
        """Load CCXT markets lazily (blocking call, run in a worker thread)."""
        if self._connected:
            return
        load_markets = getattr(self.client, "load_markets", None)
        if callable(load_markets):
            await asyncio.to_thread(load_markets)
        self._connected = True

    async def close(self) -> None:
        """Close CCXT client if supported."""
        if not self._connected:
            return
        close_fn = getattr(self.client, "close", None)
        if callable(close_fn):
            maybe_coro = close_fn()
            if asyncio.iscoroutine(maybe_coro):
                await maybe_coro
        self._connected = False


from .client_factory import create_ccxt_client  # noqa: E402
from .kline_adapter import CCXTKlineSource  # noqa: E402

__all__ = ["CCXTAdapterBase", "CCXTKlineSource", "create_ccxt_client"]
