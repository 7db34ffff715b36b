from __future__ import annotations

import time
import uuid
from typing import Optional

import aiosqlite

from ..models import Comment, Visibility
from .base import BaseService
from .submissions_store import SubmissionsStore


class CommentsStore(BaseService[Comment]):
    def __init__(self, sqlite_path: str, submissions: SubmissionsStore, cache_ttl: int = 300) -> None:
        super().__init__(sqlite_path, cache_ttl)
        self._submissions = submissions

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS comments (
                comment_id TEXT PRIMARY KEY,
                submission_id TEXT NOT NULL,
                author_id INTEGER NOT NULL,
                author_handle TEXT NULL,
                recipient_id INTEGER NULL,
                reply_to TEXT NULL,
                text TEXT NOT NULL,
                visibility TEXT NOT NULL,
                created_at INTEGER NOT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_comments_sub ON comments (submission_id, visibility, created_at)")

    def _from_row(self, row: aiosqlite.Row) -> Comment:
        return Comment.from_row(row)

    @property
    def _get_query(self) -> str:
        return "SELECT * FROM comments WHERE comment_id = ?"

    async def add(
        self,
        submission_id: str,
        author_id: int,
        text: str,
        visibility: Visibility,
        *,
        author_handle: Optional[str] = None,
        recipient_id: Optional[int] = None,
        reply_to: Optional[str] = None,
    ) -> tuple[Comment, Optional[int]]:
        """Insert a comment; public ones bump the submission's counter in the same transaction.

        Returns the comment and the new public comment count (None for private messages).
        """
        prefix = "private" if visibility is Visibility.PRIVATE else "comment"
        comment = Comment(
            comment_id=f"{prefix}_{int(author_id)}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}",
            submission_id=str(submission_id),
            author_id=int(author_id),
            author_handle=author_handle,
            recipient_id=recipient_id,
            reply_to=reply_to,
            text=text,
            visibility=visibility,
            created_at=int(time.time()),
        )
        async with self.transaction() as db:
            await db.execute(
                """
                INSERT INTO comments (comment_id, submission_id, author_id, author_handle, recipient_id, reply_to, text, visibility, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    comment.comment_id,
                    comment.submission_id,
                    comment.author_id,
                    comment.author_handle,
                    comment.recipient_id,
                    comment.reply_to,
                    comment.text,
                    comment.visibility.value,
                    comment.created_at,
                ),
            )
            new_count = None
            if visibility is Visibility.PUBLIC:
                new_count = await self._submissions.increment_comment_count_in(db, submission_id)
        return comment, new_count

    async def list_public(self, submission_id: str, limit: int = 50) -> list[Comment]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute(
                """
                SELECT * FROM comments
                WHERE submission_id=? AND visibility=?
                ORDER BY created_at ASC, rowid ASC
                LIMIT ?
                """,
                (str(submission_id), Visibility.PUBLIC.value, int(limit)),
            )
            rows = await cur.fetchall()
            await cur.close()
        return [self._from_row(r) for r in rows]
