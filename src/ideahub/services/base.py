from __future__ import annotations

import aiosqlite
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, Optional, TypeVar

from .cache import TTLCache

T = TypeVar("T")
log = logging.getLogger("ideahub.base_service")

# Seconds a connection waits on another writer's lock before OperationalError
BUSY_TIMEOUT_SECONDS = 5.0


class BaseService(ABC, Generic[T]):
    """Base class for all SQLite-backed services with caching."""

    # Stores whose rows change under concurrent writers must always read through.
    _cache_enabled = True

    def __init__(self, sqlite_path: str, cache_ttl_seconds: int = 120) -> None:
        self._path = sqlite_path
        self._cache: TTLCache[Any, T] = TTLCache(default_ttl_seconds=cache_ttl_seconds)
        self._logger = logging.getLogger(f"ideahub.{self.__class__.__name__.lower()}")

    async def init(self) -> None:
        """Initialize the database schema."""
        async with aiosqlite.connect(self._path) as db:
            await self._create_tables(db)
            await db.commit()

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        """Create the necessary database tables."""
        pass

    @abstractmethod
    def _from_row(self, row: aiosqlite.Row) -> T:
        """Convert a database row to the service's data type."""
        pass

    @property
    @abstractmethod
    def _get_query(self) -> str:
        """SQL query for getting data by key."""
        pass

    async def get(self, key: Any) -> Optional[T]:
        """Get cached data or fetch from database."""
        if self._cache_enabled:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(self._get_query, (key,)) as cur:
                row = await cur.fetchone()
                if row is None:
                    return None

                data = self._from_row(row)
                if self._cache_enabled:
                    self._cache.set(key, data)
                return data

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run a block as one write transaction.

        ``BEGIN IMMEDIATE`` takes the database write lock up front, so two
        transactions can never both read a value and then both write it back.
        A writer that cannot get the lock within the busy timeout raises
        ``aiosqlite.OperationalError``; callers decide whether to retry.
        """
        async with aiosqlite.connect(self._path, isolation_level=None, timeout=BUSY_TIMEOUT_SECONDS) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield db
            except BaseException:
                if db.in_transaction:
                    await db.execute("ROLLBACK")
                raise
            else:
                await db.execute("COMMIT")

    def invalidate(self, key: Any) -> None:
        self._cache.delete(key)
