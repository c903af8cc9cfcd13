"""Live stream collection."""

from .collector import CollectorConfig, CollectorResult, StreamCollector, collect

__all__ = [
    "CollectorConfig",
    "CollectorResult",
    "StreamCollector",
    "collect",
]
