"""Database access for the storage layer (asyncpg)."""

from .ports import DatabaseAdapter, IDatabaseAdapter

__all__ = ["DatabaseAdapter", "IDatabaseAdapter"]
