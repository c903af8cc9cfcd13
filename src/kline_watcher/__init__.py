"""
Kline watcher: candle ingestion and gap reconciliation.
Modular architecture with clean separation of concerns.

Modules:
- ingestion: live stream collection, historical backfill, source adapters
- storage: series store ports and PostgreSQL repositories
- shared: candle models and error types
- infrastructure: config, database, logging
"""

__version__ = "0.1.0"
