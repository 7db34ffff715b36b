from __future__ import annotations

import time
from dataclasses import dataclass

import aiosqlite

from ..constants import ACHIEVEMENTS
from .base import BaseService


@dataclass(frozen=True)
class Achievement:
    code: str
    unlocked_at: int

    @property
    def title(self) -> str:
        return ACHIEVEMENTS.get(self.code, (0, self.code))[1]


class AchievementsStore(BaseService[Achievement]):
    """Milestones for approved ideas. Each code unlocks at most once per user."""

    _cache_enabled = False

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS achievements (
                user_id INTEGER NOT NULL,
                code TEXT NOT NULL,
                unlocked_at INTEGER NOT NULL,
                PRIMARY KEY (user_id, code)
            )
            """
        )

    def _from_row(self, row: aiosqlite.Row) -> Achievement:
        return Achievement(code=str(row["code"]), unlocked_at=int(row["unlocked_at"]))

    @property
    def _get_query(self) -> str:
        return "SELECT code, unlocked_at FROM achievements WHERE user_id = ? ORDER BY unlocked_at ASC, code ASC"

    async def unlock_earned(self, user_id: int, approved_count: int) -> list[Achievement]:
        """Unlock every milestone ``approved_count`` reaches; returns only the new ones."""
        earned = [code for code, (needed, _) in ACHIEVEMENTS.items() if approved_count >= needed]
        if not earned:
            return []
        now = int(time.time())
        fresh: list[Achievement] = []
        async with self.transaction() as db:
            for code in earned:
                cur = await db.execute(
                    "INSERT OR IGNORE INTO achievements (user_id, code, unlocked_at) VALUES (?, ?, ?)",
                    (int(user_id), code, now),
                )
                if cur.rowcount > 0:
                    fresh.append(Achievement(code=code, unlocked_at=now))
        return fresh

    async def list_user(self, user_id: int) -> list[Achievement]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(self._get_query, (int(user_id),)) as cur:
                rows = await cur.fetchall()
        return [self._from_row(row) for row in rows]
