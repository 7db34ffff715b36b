from __future__ import annotations

import json
import time
import uuid
from typing import Optional

import aiosqlite

from ..models import Submission, SubmissionStatus
from .base import BaseService


class SubmissionsStore(BaseService[Submission]):
    # Status and counters move under concurrent moderators and commenters.
    _cache_enabled = False

    def __init__(self, sqlite_path: str, cache_ttl: int = 300) -> None:
        super().__init__(sqlite_path, cache_ttl)

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS submissions (
                submission_id TEXT PRIMARY KEY,
                author_id INTEGER NOT NULL,
                author_handle TEXT NULL,
                text TEXT NOT NULL,
                hashtags TEXT NOT NULL DEFAULT '[]',
                status TEXT NOT NULL DEFAULT 'pending',
                number INTEGER NULL UNIQUE,
                comment_count INTEGER NOT NULL DEFAULT 0,
                rejection_reason TEXT NULL,
                publish_ref TEXT NULL,
                created_at INTEGER NOT NULL,
                decided_at INTEGER NULL,
                decided_by INTEGER NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_sub_status_num ON submissions (status, number)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_sub_author ON submissions (author_id, status)")

    def _from_row(self, row: aiosqlite.Row) -> Submission:
        return Submission.from_row(row)

    @property
    def _get_query(self) -> str:
        return "SELECT * FROM submissions WHERE submission_id = ?"

    @staticmethod
    def new_id(author_id: int) -> str:
        return f"idea_{int(author_id)}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"

    async def create(self, author_id: int, text: str, hashtags: list[str], author_handle: Optional[str] = None) -> Submission:
        submission = Submission(
            submission_id=self.new_id(author_id),
            author_id=int(author_id),
            author_handle=author_handle,
            text=text,
            hashtags=list(hashtags),
            created_at=int(time.time()),
        )
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                INSERT INTO submissions (submission_id, author_id, author_handle, text, hashtags, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    submission.submission_id,
                    submission.author_id,
                    submission.author_handle,
                    submission.text,
                    json.dumps(submission.hashtags),
                    SubmissionStatus.PENDING.value,
                    submission.created_at,
                ),
            )
            await db.commit()
        return submission

    async def fetch_in(self, db: aiosqlite.Connection, submission_id: str) -> Optional[Submission]:
        """Read a submission on an already-open connection (inside a transaction)."""
        async with db.execute(self._get_query, (str(submission_id),)) as cur:
            row = await cur.fetchone()
        return self._from_row(row) if row else None

    async def mark_approved_in(self, db: aiosqlite.Connection, submission_id: str, number: int, moderator_id: int) -> bool:
        cur = await db.execute(
            """
            UPDATE submissions SET status=?, number=?, decided_at=?, decided_by=?
            WHERE submission_id=? AND status=? AND number IS NULL
            """,
            (
                SubmissionStatus.APPROVED.value,
                int(number),
                int(time.time()),
                int(moderator_id),
                str(submission_id),
                SubmissionStatus.PENDING.value,
            ),
        )
        return cur.rowcount > 0

    async def max_approved_number_in(self, db: aiosqlite.Connection) -> int:
        async with db.execute(
            "SELECT COALESCE(MAX(number), 0) FROM submissions WHERE status=?",
            (SubmissionStatus.APPROVED.value,),
        ) as cur:
            row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def mark_rejected(self, submission_id: str, moderator_id: int, reason: str) -> Optional[Submission]:
        """Move a pending submission to rejected; None if it is unknown or already decided."""
        async with self.transaction() as db:
            cur = await db.execute(
                """
                UPDATE submissions SET status=?, rejection_reason=?, decided_at=?, decided_by=?
                WHERE submission_id=? AND status=?
                """,
                (
                    SubmissionStatus.REJECTED.value,
                    reason,
                    int(time.time()),
                    int(moderator_id),
                    str(submission_id),
                    SubmissionStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                return None
            return await self.fetch_in(db, submission_id)

    async def increment_comment_count_in(self, db: aiosqlite.Connection, submission_id: str) -> int:
        await db.execute(
            "UPDATE submissions SET comment_count = comment_count + 1 WHERE submission_id=?",
            (str(submission_id),),
        )
        async with db.execute("SELECT comment_count FROM submissions WHERE submission_id=?", (str(submission_id),)) as cur:
            row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def set_publish_ref(self, submission_id: str, publish_ref: str) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "UPDATE submissions SET publish_ref=? WHERE submission_id=?",
                (str(publish_ref), str(submission_id)),
            )
            await db.commit()

    async def _list(self, query: str, params: tuple) -> list[Submission]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute(query, params)
            rows = await cur.fetchall()
            await cur.close()
        return [self._from_row(r) for r in rows]

    async def list_approved(self, limit: int = 10) -> list[Submission]:
        return await self._list(
            "SELECT * FROM submissions WHERE status=? ORDER BY number DESC LIMIT ?",
            (SubmissionStatus.APPROVED.value, int(limit)),
        )

    async def list_pending(self, limit: int = 10) -> list[Submission]:
        return await self._list(
            "SELECT * FROM submissions WHERE status=? ORDER BY created_at ASC LIMIT ?",
            (SubmissionStatus.PENDING.value, int(limit)),
        )

    async def list_unpublished(self) -> list[Submission]:
        return await self._list(
            "SELECT * FROM submissions WHERE status=? AND publish_ref IS NULL ORDER BY number ASC",
            (SubmissionStatus.APPROVED.value,),
        )

    async def count_approved_by(self, author_id: int) -> int:
        async with aiosqlite.connect(self._path) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM submissions WHERE author_id=? AND status=?",
                (int(author_id), SubmissionStatus.APPROVED.value),
            ) as cur:
                row = await cur.fetchone()
        return int(row[0]) if row else 0
