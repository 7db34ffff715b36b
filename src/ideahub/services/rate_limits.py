from __future__ import annotations

import json
import time
from typing import Callable

import aiosqlite

from ..constants import RATE_LIMIT_HISTORY
from .base import BaseService

Clock = Callable[[], float]


def _now_ms(clock: Clock) -> int:
    return int(clock() * 1000)


class RateLimiter(BaseService[list]):
    """Per-user, per-action timestamp history.

    One record per (user, action) holds a bounded list of recent millisecond
    timestamps. Both a simple cooldown ("N ms since the last one") and a
    sliding window ("at most N in the last W ms") are answered from it.
    Expired entries are dropped lazily whenever a record is written.
    """

    _cache_enabled = False

    def __init__(self, sqlite_path: str, *, clock: Clock = time.time, history: int = RATE_LIMIT_HISTORY) -> None:
        super().__init__(sqlite_path)
        self._clock = clock
        self._history = max(1, int(history))

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS rate_limits (
                user_id INTEGER NOT NULL,
                action TEXT NOT NULL,
                stamps TEXT NOT NULL DEFAULT '[]',
                PRIMARY KEY (user_id, action)
            )
            """
        )

    def _from_row(self, row: aiosqlite.Row) -> list:
        return [int(x) for x in json.loads(row["stamps"] or "[]")]

    @property
    def _get_query(self) -> str:
        return "SELECT stamps FROM rate_limits WHERE user_id = ? AND action = ?"

    def now_ms(self) -> int:
        return _now_ms(self._clock)

    async def stamps(self, user_id: int, action: str) -> list[int]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(self._get_query, (int(user_id), str(action))) as cur:
                row = await cur.fetchone()
        return self._from_row(row) if row else []

    async def cooldown_remaining_ms(self, user_id: int, action: str, cooldown_ms: int) -> int:
        """Milliseconds until ``action`` is allowed again; 0 when allowed now."""
        if cooldown_ms <= 0:
            return 0
        history = await self.stamps(user_id, action)
        if not history:
            return 0
        elapsed = self.now_ms() - max(history)
        return max(0, int(cooldown_ms) - elapsed)

    async def window_retry_after_ms(self, user_id: int, action: str, limit: int, window_ms: int) -> int:
        """Milliseconds until one more ``action`` fits in the sliding window; 0 when it fits now."""
        if limit <= 0 or window_ms <= 0:
            return 0
        now = self.now_ms()
        recent = sorted(t for t in await self.stamps(user_id, action) if now - t < window_ms)
        if len(recent) < limit:
            return 0
        # The window frees up when the oldest counted entry ages out.
        oldest_counted = recent[len(recent) - limit]
        return max(1, oldest_counted + int(window_ms) - now)

    async def record(self, user_id: int, action: str, *, keep_ms: int = 0, keep_count: int = 0) -> None:
        """Append an occurrence, evicting entries older than ``keep_ms``.

        The list is trimmed to the history bound, widened to ``keep_count`` so
        a window limit larger than the default bound can still be reached.
        """
        now = self.now_ms()
        async with self.transaction() as db:
            async with db.execute(self._get_query, (int(user_id), str(action))) as cur:
                row = await cur.fetchone()
            history = self._from_row(row) if row else []
            if keep_ms > 0:
                history = [t for t in history if now - t < keep_ms]
            history.append(now)
            history = history[-max(self._history, int(keep_count)):]
            await db.execute(
                """
                INSERT INTO rate_limits (user_id, action, stamps)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id, action) DO UPDATE SET stamps=excluded.stamps
                """,
                (int(user_id), str(action), json.dumps(history)),
            )
