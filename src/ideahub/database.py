from __future__ import annotations

import logging
from typing import Sequence

import aiosqlite

from .services.base import BaseService

log = logging.getLogger("ideahub.database")


async def initialize_database(sqlite_path: str, stores: Sequence[BaseService]) -> None:
    """Apply pragmas and create every store's tables, in order."""
    try:
        async with aiosqlite.connect(sqlite_path) as db:
            # WAL lets readers proceed while an approval holds the write lock.
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")
            await db.execute("PRAGMA foreign_keys=ON")
            await db.execute("PRAGMA temp_store=MEMORY")
            await db.commit()

        log.info("Applied SQLite optimizations")

        for store in stores:
            await store.init()
            log.info("Initialized %s", store.__class__.__name__)

        log.info("Database initialization completed")

    except Exception as e:
        log.error("Failed to initialize database: %s", e)
        raise


async def get_database_info(sqlite_path: str) -> dict:
    """Size and table counts, for the health endpoint."""
    async with aiosqlite.connect(sqlite_path) as db:
        cursor = await db.execute("PRAGMA page_count")
        page_count = (await cursor.fetchone())[0]

        cursor = await db.execute("PRAGMA page_size")
        page_size = (await cursor.fetchone())[0]

        counts: dict[str, int] = {}
        for table in ("users", "submissions", "comments"):
            cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
            counts[table] = int((await cursor.fetchone())[0])

        return {
            "size_bytes": page_count * page_size,
            "rows": counts,
        }
