from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings
from ..constants import ACTION_SUBMIT, MAX_REJECTION_REASON_LENGTH
from ..errors import CooldownActive, NotFound, NotPermitted, PublishFailed, ValidationError
from ..interfaces import Publisher
from ..models import Submission
from ..text import extract_hashtags, sanitize
from ..ui import menus
from .achievements_store import AchievementsStore
from .fanout import NotificationFanout
from .rate_limits import RateLimiter
from .sequence import SequenceAllocator
from .stats import RuntimeStats
from .submissions_store import SubmissionsStore
from .users_store import UsersStore

log = logging.getLogger("ideahub.lifecycle")


class SubmissionLifecycle:
    """pending -> approved | rejected, with the side effects of each transition."""

    def __init__(
        self,
        settings: Settings,
        *,
        submissions: SubmissionsStore,
        users: UsersStore,
        allocator: SequenceAllocator,
        rate_limiter: RateLimiter,
        achievements: AchievementsStore,
        fanout: NotificationFanout,
        publisher: Publisher,
        stats: Optional[RuntimeStats] = None,
    ) -> None:
        self.settings = settings
        self._submissions = submissions
        self._users = users
        self._allocator = allocator
        self._rate_limiter = rate_limiter
        self._achievements = achievements
        self._fanout = fanout
        self._publisher = publisher
        self._stats = stats or RuntimeStats()

    def _validate_length(self, text: str) -> None:
        lo, hi = self.settings.min_submission_length, self.settings.max_submission_length
        if len(text) < lo:
            raise ValidationError(f"Your idea is too short (minimum {lo} characters).")
        if len(text) > hi:
            raise ValidationError(f"Your idea is too long (maximum {hi} characters).")

    def _require_admin(self, user_id: int) -> None:
        if not self.settings.is_admin(user_id):
            raise NotPermitted("Only moderators can do that.")

    async def get(self, submission_id: str) -> Submission:
        submission = await self._submissions.get(submission_id)
        if submission is None:
            raise NotFound("That idea no longer exists.")
        return submission

    async def get_pending(self, submission_id: str) -> Submission:
        submission = await self.get(submission_id)
        if not submission.is_pending:
            raise NotFound(f"That idea was already {submission.status.value}.")
        return submission

    async def get_approved(self, submission_id: str) -> Submission:
        submission = await self.get(submission_id)
        if not submission.is_approved:
            raise NotFound("That idea isn't published.")
        return submission

    async def submit(self, author_id: int, text: str, handle: Optional[str] = None) -> Submission:
        self._validate_length((text or "").strip())
        clean = sanitize(text)
        self._validate_length(clean)

        user = await self._users.ensure(author_id, handle)
        if not user.active:
            raise NotPermitted("You are blocked from submitting ideas.")

        remaining = await self._rate_limiter.cooldown_remaining_ms(
            author_id, ACTION_SUBMIT, self.settings.submission_cooldown_ms
        )
        if remaining > 0:
            raise CooldownActive(remaining)

        submission = await self._submissions.create(
            author_id, clean, extract_hashtags(clean), author_handle=handle or user.handle
        )
        await self._users.increment_submissions(author_id)
        await self._rate_limiter.record(author_id, ACTION_SUBMIT, keep_ms=self.settings.submission_cooldown_ms)
        self._stats.submissions_received += 1
        log.info("Submission %s received from %s", submission.submission_id, author_id)

        await self._fanout.notify_admins(menus.admin_new_submission(submission), menus.review_controls(submission))
        return submission

    async def approve(self, submission_id: str, moderator_id: int) -> Submission:
        """Approve, number and publish a pending submission.

        The number is committed before the publish attempt. If the channel
        post fails the submission keeps its number without a publish
        reference; the author is still told and PublishFailed is raised at
        the end so the moderator knows to reconcile.
        """
        self._require_admin(moderator_id)
        submission = await self._allocator.allocate_for(submission_id, moderator_id)
        self._stats.approvals += 1

        publish_error: Optional[PublishFailed] = None
        try:
            ref = await self._publisher.post(
                self.settings.channel_id,
                menus.channel_post(submission, self.settings.bot_handle),
                menus.channel_controls(submission),
            )
        except Exception as e:
            self._stats.publish_failures += 1
            log.error(
                "RECONCILE: idea #%s (%s) approved but channel post failed: %s",
                submission.number,
                submission.submission_id,
                e,
            )
            publish_error = PublishFailed(
                f"Idea #{submission.number} was approved but could not be posted to the channel. Use /reconcile to retry.",
                submission=submission,
            )
        else:
            await self._submissions.set_publish_ref(submission.submission_id, ref)
            submission.publish_ref = ref

        await self._fanout.notify_user(submission.author_id, menus.approval_notice(submission), menus.home_controls())
        await self._users.add_reputation(submission.author_id, self.settings.reputation_per_approval)
        await self._check_achievements(submission.author_id)

        if publish_error is not None:
            raise publish_error
        return submission

    async def _check_achievements(self, author_id: int) -> list[str]:
        approved = await self._submissions.count_approved_by(author_id)
        unlocked = await self._achievements.unlock_earned(author_id, approved)
        for achievement in unlocked:
            await self._fanout.notify_user(author_id, menus.achievement_notice(achievement.title))
        if unlocked:
            log.info("User %s unlocked %s", author_id, ", ".join(a.code for a in unlocked))
        return [a.code for a in unlocked]

    async def reject(self, submission_id: str, moderator_id: int, reason: str) -> Submission:
        self._require_admin(moderator_id)
        reason = sanitize(reason)
        if not reason:
            raise ValidationError("Please send a rejection reason.")
        if len(reason) > MAX_REJECTION_REASON_LENGTH:
            raise ValidationError(f"Keep the reason under {MAX_REJECTION_REASON_LENGTH} characters.")

        submission = await self._submissions.mark_rejected(submission_id, moderator_id, reason)
        if submission is None:
            existing = await self._submissions.get(submission_id)
            if existing is None:
                raise NotFound("That idea no longer exists.")
            raise NotFound(f"That idea was already {existing.status.value}.")

        self._stats.rejections += 1
        log.info("Submission %s rejected by %s", submission_id, moderator_id)
        await self._fanout.notify_user(submission.author_id, menus.rejection_notice(reason), menus.home_controls())
        return submission

    async def republish_missing(self, moderator_id: int) -> list[Submission]:
        """Post approved ideas that never made it to the channel.

        Stops at the first failure so a channel outage isn't hammered; what
        was posted so far keeps its reference.
        """
        self._require_admin(moderator_id)
        posted: list[Submission] = []
        for submission in await self._submissions.list_unpublished():
            ref = await self._publisher.post(
                self.settings.channel_id,
                menus.channel_post(submission, self.settings.bot_handle),
                menus.channel_controls(submission),
            )
            await self._submissions.set_publish_ref(submission.submission_id, ref)
            submission.publish_ref = ref
            posted.append(submission)
            log.info("Reconciled idea #%s (%s)", submission.number, submission.submission_id)
        return posted

    async def list_pending(self, limit: int = 5) -> list[Submission]:
        return await self._submissions.list_pending(limit)

    async def list_recent(self, limit: int = 10) -> list[Submission]:
        return await self._submissions.list_approved(limit)
