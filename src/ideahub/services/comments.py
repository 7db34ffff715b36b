from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings
from ..constants import ACTION_COMMENT
from ..errors import NotFound, NotPermitted, RateLimited, ValidationError
from ..interfaces import Publisher
from ..models import Comment, Submission, Visibility
from ..text import sanitize
from ..ui import menus
from .comments_store import CommentsStore
from .fanout import NotificationFanout
from .rate_limits import RateLimiter
from .stats import RuntimeStats
from .submissions_store import SubmissionsStore
from .users_store import UsersStore

log = logging.getLogger("ideahub.comments")


class CommentService:
    """Public comments and anonymous private messages on published ideas."""

    def __init__(
        self,
        settings: Settings,
        *,
        comments: CommentsStore,
        submissions: SubmissionsStore,
        users: UsersStore,
        rate_limiter: RateLimiter,
        fanout: NotificationFanout,
        publisher: Publisher,
        stats: Optional[RuntimeStats] = None,
    ) -> None:
        self.settings = settings
        self._comments = comments
        self._submissions = submissions
        self._users = users
        self._rate_limiter = rate_limiter
        self._fanout = fanout
        self._publisher = publisher
        self._stats = stats or RuntimeStats()

    async def _published(self, submission_id: str) -> Submission:
        submission = await self._submissions.get(submission_id)
        if submission is None or not submission.is_approved:
            raise NotFound("That idea isn't available for comments.")
        return submission

    async def _resolve_recipient(self, submission: Submission, reply_to: Optional[str]) -> tuple[int, Optional[Comment]]:
        """Who a private message goes to: the writer, or the sender of the message being answered."""
        if reply_to is None:
            return submission.author_id, None
        original = await self._comments.get(reply_to)
        if original is None or not original.is_private or original.submission_id != submission.submission_id:
            raise NotFound("The message you're replying to no longer exists.")
        return original.author_id, original

    def _validate(self, text: str) -> str:
        lo, hi = self.settings.min_comment_length, self.settings.max_comment_length
        stripped = (text or "").strip()
        if len(stripped) < lo:
            raise ValidationError(f"Your message is too short (minimum {lo} characters).")
        if len(stripped) > hi:
            raise ValidationError(f"Your message is too long (maximum {hi} characters).")
        clean = sanitize(stripped)
        if len(clean) < lo:
            raise ValidationError(f"Your message is too short (minimum {lo} characters).")
        return clean

    async def add_comment(
        self,
        submission_id: str,
        author_id: int,
        text: str,
        visibility: Visibility = Visibility.PUBLIC,
        *,
        reply_to: Optional[str] = None,
        handle: Optional[str] = None,
    ) -> Comment:
        submission = await self._published(submission_id)
        clean = self._validate(text)

        recipient_id: Optional[int] = None
        original: Optional[Comment] = None
        if visibility is Visibility.PRIVATE:
            recipient_id, original = await self._resolve_recipient(submission, reply_to)
            if recipient_id == int(author_id):
                raise ValidationError("You can't send a private message to yourself.")

        user = await self._users.ensure(author_id, handle)
        if not user.active:
            raise NotPermitted("You are blocked from commenting.")

        retry_after = await self._rate_limiter.window_retry_after_ms(
            author_id, ACTION_COMMENT, self.settings.comment_rate_limit, self.settings.comment_rate_window_ms
        )
        if retry_after > 0:
            raise RateLimited(retry_after)

        comment, new_count = await self._comments.add(
            submission.submission_id,
            author_id,
            clean,
            visibility,
            author_handle=handle or user.handle,
            recipient_id=recipient_id,
            reply_to=original.comment_id if original else None,
        )
        await self._rate_limiter.record(
            author_id,
            ACTION_COMMENT,
            keep_ms=self.settings.comment_rate_window_ms,
            keep_count=self.settings.comment_rate_limit,
        )

        if visibility is Visibility.PUBLIC:
            assert new_count is not None
            self._stats.comments_added += 1
            await self._after_public(submission, comment, new_count)
        else:
            assert recipient_id is not None
            self._stats.private_messages_relayed += 1
            await self._after_private(submission, comment, recipient_id)
        return comment

    async def _after_public(self, submission: Submission, comment: Comment, new_count: int) -> None:
        await self._refresh_counter(submission, new_count)
        if comment.author_id != submission.author_id:
            await self._fanout.notify_user(
                submission.author_id,
                menus.comment_notice(submission, comment.text),
                menus.channel_controls(submission, new_count),
            )
        if self.settings.notify_admins_on_activity:
            await self._fanout.notify_admins(
                menus.admin_activity("💬 **NEW PUBLIC COMMENT**", submission, comment),
                exclude=(comment.author_id,),
            )

    async def _refresh_counter(self, submission: Submission, new_count: int) -> None:
        if not submission.publish_ref:
            return
        try:
            await self._publisher.update_controls(
                self.settings.channel_id, submission.publish_ref, menus.channel_controls(submission, new_count)
            )
        except Exception as e:
            # The stored count is authoritative; the public button catches up on the next comment.
            log.warning("Could not refresh comment count on idea #%s: %s", submission.number, e)

    async def _after_private(self, submission: Submission, comment: Comment, recipient_id: int) -> None:
        delivered = await self._fanout.notify_user(
            recipient_id,
            menus.private_relay(submission, comment.text, is_reply=comment.reply_to is not None),
            menus.reply_private_controls(comment),
        )
        if not delivered:
            log.warning("Private message %s could not be relayed to %s", comment.comment_id, recipient_id)
        if self.settings.notify_admins_on_activity:
            recipient = await self._users.get(recipient_id)
            await self._fanout.notify_admins(
                menus.admin_activity(
                    "💌 **NEW PRIVATE MESSAGE**",
                    submission,
                    comment,
                    recipient_handle=(recipient.handle if recipient and recipient.handle else str(recipient_id)),
                ),
                exclude=(comment.author_id,),
            )

    async def list_public(self, submission_id: str) -> list[Comment]:
        await self._published(submission_id)
        return await self._comments.list_public(submission_id)

    async def get_private(self, comment_id: str) -> Comment:
        comment = await self._comments.get(comment_id)
        if comment is None or not comment.is_private:
            raise NotFound("That message no longer exists.")
        return comment
