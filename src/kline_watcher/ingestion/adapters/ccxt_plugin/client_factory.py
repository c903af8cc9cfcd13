"""CCXT client factory.

Creates a configured synchronous CCXT exchange for CCXTKlineSource.
"""

from __future__ import annotations

from typing import Any

import ccxt

from kline_watcher.infrastructure.config.state import CCXTConfig
from kline_watcher.shared.errors import ConfigurationError


def _build_options(
    config: CCXTConfig, extra_options: dict[str, Any] | None
) -> dict[str, Any]:
    options: dict[str, Any] = {
        "apiKey": config.api_key or "",
        "secret": config.api_secret or "",
        "enableRateLimit": True,
        "timeout": config.timeout_ms,
    }

    if extra_options:
        # Shallow-merge at root; the nested "options" bag is merged separately
        options.update({k: v for k, v in extra_options.items() if k != "options"})
        if "options" in extra_options:
            options.setdefault("options", {}).update(extra_options["options"])

    return options


def create_ccxt_client(
    config: CCXTConfig | None = None,
    extra_options: dict[str, Any] | None = None,
):
    """Instantiate the CCXT exchange named by `config.exchange`.

    Raises:
        ConfigurationError: unknown exchange id
    """
    config = config or CCXTConfig()
    exchange_id = config.exchange.lower()
    if exchange_id not in ccxt.exchanges:
        raise ConfigurationError(f"Unsupported exchange for CCXT client: {config.exchange}")

    exchange_class = getattr(ccxt, exchange_id)
    return exchange_class(_build_options(config, extra_options))
