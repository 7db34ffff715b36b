"""Gap-free public numbering for approved ideas.

The counter lives in a single-row table and is only ever advanced inside a
write transaction, together with whatever the caller binds the number to.
Nothing is cached in process: every allocation re-reads the stored value, so
several bot instances (or a restart mid-approval) can never hand out the same
number twice.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

import aiosqlite

from ..errors import AllocationFailed, NotFound
from ..models import Submission
from .base import BaseService
from .submissions_store import SubmissionsStore

log = logging.getLogger("ideahub.sequence")

_COUNTER_ID = 1


class _Conflict(Exception):
    """Counter moved between read and compare-and-swap."""


class SequenceAllocator(BaseService[int]):
    _cache_enabled = False

    def __init__(
        self,
        sqlite_path: str,
        submissions: SubmissionsStore,
        *,
        max_retries: int = 5,
        backoff_seconds: float = 0.02,
    ) -> None:
        super().__init__(sqlite_path)
        self._submissions = submissions
        self._max_retries = max(1, int(max_retries))
        self._backoff = max(0.0, float(backoff_seconds))

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS sequence_counter (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                value INTEGER NOT NULL CHECK (value >= 0)
            )
            """
        )

    def _from_row(self, row: aiosqlite.Row) -> int:
        return int(row["value"])

    @property
    def _get_query(self) -> str:
        return "SELECT value FROM sequence_counter WHERE id = ?"

    async def current(self) -> int:
        """Last assigned number (0 when nothing was ever allocated)."""
        value = await self.get(_COUNTER_ID)
        return 0 if value is None else value

    async def _read_counter(self, db: aiosqlite.Connection) -> int:
        async with db.execute(self._get_query, (_COUNTER_ID,)) as cur:
            row = await cur.fetchone()
        if row is not None:
            return int(row[0])

        # First use: continue from the highest number already published.
        seed = await self._submissions.max_approved_number_in(db)
        await db.execute("INSERT INTO sequence_counter (id, value) VALUES (?, ?)", (_COUNTER_ID, seed))
        log.info("Sequence counter bootstrapped at %d", seed)
        return seed

    async def _advance(self, db: aiosqlite.Connection) -> int:
        last = await self._read_counter(db)
        nxt = last + 1
        cur = await db.execute(
            "UPDATE sequence_counter SET value=? WHERE id=? AND value=?",
            (nxt, _COUNTER_ID, last),
        )
        if cur.rowcount != 1:
            raise _Conflict()
        return nxt

    async def _run(self, submission_id: Optional[str], moderator_id: int) -> tuple[int, Optional[Submission]]:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.transaction() as db:
                    if submission_id is None:
                        return await self._advance(db), None

                    current = await self._submissions.fetch_in(db, submission_id)
                    if current is None:
                        raise NotFound("That idea no longer exists.")
                    if not current.is_pending:
                        raise NotFound(f"That idea was already {current.status.value}.")

                    number = await self._advance(db)
                    if not await self._submissions.mark_approved_in(db, submission_id, number, moderator_id):
                        raise _Conflict()
                    approved = await self._submissions.fetch_in(db, submission_id)
                    return number, approved
            except (_Conflict, aiosqlite.OperationalError) as e:
                if attempt >= self._max_retries:
                    log.error(
                        "Sequence allocation failed after %d attempts (submission=%s): %s",
                        attempt,
                        submission_id,
                        type(e).__name__,
                    )
                    raise AllocationFailed("Could not assign an idea number right now. Please try again.") from e
                log.warning("Sequence allocation conflict (attempt %d/%d), retrying", attempt, self._max_retries)
                await asyncio.sleep(self._backoff * attempt * (1 + random.random()))

    async def allocate_next(self) -> int:
        """Advance the counter and return the new value."""
        number, _ = await self._run(None, 0)
        return number

    async def allocate_for(self, submission_id: str, moderator_id: int) -> Submission:
        """Approve a pending submission and bind the next number to it atomically.

        Raises NotFound when the submission is unknown or already decided; in
        that case the counter is left untouched.
        """
        number, approved = await self._run(str(submission_id), int(moderator_id))
        assert approved is not None
        log.info("Assigned number %d to %s (moderator=%s)", number, submission_id, moderator_id)
        return approved
