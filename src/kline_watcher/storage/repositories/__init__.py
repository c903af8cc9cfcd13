"""Repository module for data access layer.

Concrete SeriesStore implementations. All repositories use async/await and
are injected with a database adapter for testability.
"""

from .klines import KlineRepository

__all__ = ["KlineRepository"]
