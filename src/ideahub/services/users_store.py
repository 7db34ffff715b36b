from __future__ import annotations

import time
from typing import Optional

import aiosqlite

from ..models import User
from .base import BaseService


class UsersStore(BaseService[User]):
    def __init__(self, sqlite_path: str, cache_ttl: int = 300) -> None:
        super().__init__(sqlite_path, cache_ttl)

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                user_id INTEGER PRIMARY KEY,
                handle TEXT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                submission_count INTEGER NOT NULL DEFAULT 0,
                reputation INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL
            )
            """
        )

    def _from_row(self, row: aiosqlite.Row) -> User:
        return User.from_row(row)

    @property
    def _get_query(self) -> str:
        return "SELECT * FROM users WHERE user_id = ?"

    async def ensure(self, user_id: int, handle: Optional[str] = None) -> User:
        """Return the user, creating the record on first contact.

        A changed handle is written through so admin notices show the current one.
        """
        user = await self.get(int(user_id))
        if user is not None and (handle is None or handle == user.handle):
            return user
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                INSERT INTO users (user_id, handle, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    handle=COALESCE(excluded.handle, users.handle)
                """,
                (int(user_id), handle, int(time.time())),
            )
            await db.commit()
        self.invalidate(int(user_id))
        user = await self.get(int(user_id))
        assert user is not None
        return user

    async def increment_submissions(self, user_id: int) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "UPDATE users SET submission_count = submission_count + 1 WHERE user_id=?",
                (int(user_id),),
            )
            await db.commit()
        self.invalidate(int(user_id))

    async def add_reputation(self, user_id: int, delta: int) -> int:
        async with self.transaction() as db:
            await db.execute(
                "UPDATE users SET reputation = reputation + ? WHERE user_id=?",
                (int(delta), int(user_id)),
            )
            async with db.execute("SELECT reputation FROM users WHERE user_id=?", (int(user_id),)) as cur:
                row = await cur.fetchone()
        self.invalidate(int(user_id))
        return int(row[0]) if row else 0

    async def set_active(self, user_id: int, active: bool) -> bool:
        """Block or unblock a user. Returns False when the user was never seen."""
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                "UPDATE users SET active=? WHERE user_id=?",
                (1 if active else 0, int(user_id)),
            )
            await db.commit()
            changed = cur.rowcount > 0
        self.invalidate(int(user_id))
        return changed
