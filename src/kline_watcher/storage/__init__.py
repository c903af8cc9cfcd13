"""Storage layer: the SeriesStore port and its PostgreSQL implementation.

    ┌─────────────────────────────────────┐
    │ StreamCollector / GapFixer           │
    └──────────────┬──────────────────────┘
                   │ SeriesStore port
    ┌──────────────▼──────────────────────┐
    │ KlineRepository                      │
    │ - PostgreSQL/TimescaleDB (asyncpg)   │
    └─────────────────────────────────────┘
"""

from .ports import SeriesStore
from .repositories import KlineRepository

__all__ = ["KlineRepository", "SeriesStore"]
