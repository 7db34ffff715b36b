from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import aiosqlite


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass
class User:
    user_id: int
    handle: Optional[str] = None
    active: bool = True
    submission_count: int = 0
    reputation: int = 0
    created_at: int = 0

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> "User":
        return cls(
            user_id=int(row["user_id"]),
            handle=row["handle"],
            active=bool(row["active"]),
            submission_count=int(row["submission_count"]),
            reputation=int(row["reputation"]),
            created_at=int(row["created_at"]),
        )


@dataclass
class Submission:
    submission_id: str
    author_id: int
    text: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    author_handle: Optional[str] = None
    hashtags: list[str] = field(default_factory=list)
    number: Optional[int] = None
    comment_count: int = 0
    rejection_reason: Optional[str] = None
    publish_ref: Optional[str] = None
    created_at: int = 0
    decided_at: Optional[int] = None
    decided_by: Optional[int] = None

    @property
    def is_pending(self) -> bool:
        return self.status is SubmissionStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status is SubmissionStatus.APPROVED

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> "Submission":
        return cls(
            submission_id=str(row["submission_id"]),
            author_id=int(row["author_id"]),
            author_handle=row["author_handle"],
            text=str(row["text"]),
            hashtags=list(json.loads(row["hashtags"] or "[]")),
            status=SubmissionStatus(row["status"]),
            number=None if row["number"] is None else int(row["number"]),
            comment_count=int(row["comment_count"]),
            rejection_reason=row["rejection_reason"],
            publish_ref=row["publish_ref"],
            created_at=int(row["created_at"]),
            decided_at=None if row["decided_at"] is None else int(row["decided_at"]),
            decided_by=None if row["decided_by"] is None else int(row["decided_by"]),
        )


@dataclass(frozen=True)
class Comment:
    comment_id: str
    submission_id: str
    author_id: int
    text: str
    visibility: Visibility
    created_at: int
    author_handle: Optional[str] = None
    recipient_id: Optional[int] = None
    reply_to: Optional[str] = None

    @property
    def is_private(self) -> bool:
        return self.visibility is Visibility.PRIVATE

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> "Comment":
        return cls(
            comment_id=str(row["comment_id"]),
            submission_id=str(row["submission_id"]),
            author_id=int(row["author_id"]),
            author_handle=row["author_handle"],
            recipient_id=None if row["recipient_id"] is None else int(row["recipient_id"]),
            reply_to=row["reply_to"],
            text=str(row["text"]),
            visibility=Visibility(row["visibility"]),
            created_at=int(row["created_at"]),
        )
