"""
Database adapter interfaces and implementations.
Provides abstraction over database operations for dependency injection.
"""

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

import asyncpg

from kline_watcher.infrastructure.config.state import DatabaseConfig
from kline_watcher.infrastructure.observability import get_infrastructure_logger
from kline_watcher.shared.errors import StoreError

log = get_infrastructure_logger("database-adapter")


class IDatabaseAdapter(Protocol):
    """
    Protocol defining database operations interface.
    Enables dependency injection and testing with different implementations.
    """

    async def connect(self) -> None:
        """Establish database connection."""
        ...

    async def disconnect(self) -> None:
        """Close database connection."""
        ...

    async def execute_query(
        self, query: str, *args: Any, fetch_one: bool = False, fetch_all: bool = False
    ) -> Any | None:
        """
        Execute arbitrary SQL query.

        Args:
            query: SQL query string
            *args: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows

        Returns:
            Query result if fetch_one/fetch_all, else None
        """
        ...

    async def fetch_one(self, query: str, *args: Any) -> dict[str, Any] | None:
        """Fetch single row as dictionary."""
        ...

    async def fetch_all(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Fetch all rows as list of dictionaries."""
        ...

    async def execute_many(self, query: str, rows: Iterable[Sequence[Any]]) -> None:
        """
        Execute one statement for every parameter row inside a single transaction.

        Either every row is applied or none is.
        """
        ...


class DatabaseAdapter:
    """
    Concrete implementation backed by an asyncpg connection pool.
    """

    def __init__(self, config: DatabaseConfig, pool: asyncpg.Pool | None = None):
        """
        Initialize adapter.

        Args:
            config: Database connection settings
            pool: Pre-built pool (tests, shared pools); created on connect() otherwise
        """
        self.config = config
        self._pool = pool

    async def connect(self) -> None:
        """Create the connection pool (idempotent)."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.url,
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                command_timeout=self.config.command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            log.error("pool_create_failed", error=str(e))
            raise StoreError(str(e), operation="connect") from e
        log.info("pool_created", max_size=self.config.max_pool_size)

    async def disconnect(self) -> None:
        """Close the connection pool (idempotent)."""
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        log.info("pool_closed")

    async def __aenter__(self) -> "DatabaseAdapter":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    async def execute_query(
        self, query: str, *args: Any, fetch_one: bool = False, fetch_all: bool = False
    ) -> Any | None:
        """Execute arbitrary SQL query."""
        if not self._pool:
            raise RuntimeError("Database not connected")

        async with self._pool.acquire() as conn:
            if fetch_one:
                result = await conn.fetchrow(query, *args)
                return dict(result) if result else None
            elif fetch_all:
                results = await conn.fetch(query, *args)
                return [dict(row) for row in results]
            else:
                await conn.execute(query, *args)
                return None

    async def fetch_one(self, query: str, *args: Any) -> dict[str, Any] | None:
        """Fetch single row as dictionary."""
        return await self.execute_query(query, *args, fetch_one=True)

    async def fetch_all(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Fetch all rows as list of dictionaries."""
        result = await self.execute_query(query, *args, fetch_all=True)
        return result if result else []

    async def execute_many(self, query: str, rows: Iterable[Sequence[Any]]) -> None:
        """Execute `query` for each row in one transaction."""
        if not self._pool:
            raise RuntimeError("Database not connected")

        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(query, list(rows))

    @property
    def pool(self) -> asyncpg.Pool | None:
        """Access underlying connection pool."""
        return self._pool
