"""Reply texts and button layouts.

Only the choice of controls matters to the flows; wording can change freely.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..constants import MAX_BUTTON_LABEL, MAX_MESSAGE_LENGTH
from ..events import Action, ActionKind, Control, Controls, Reply
from ..models import Comment, Submission
from ..text import truncate

DIVIDER = "─────────────────────"


def _c(label: str, kind: ActionKind, entity: Optional[str] = None) -> Control:
    return Control(truncate(label, MAX_BUTTON_LABEL), Action(kind, entity))


def home_controls() -> Controls:
    return (
        (_c("💡 Submit Idea", ActionKind.SUBMIT),),
        (_c("📋 Browse Ideas", ActionKind.BROWSE),),
        (_c("🆘 Help", ActionKind.HELP),),
    )


def home_only() -> Controls:
    return ((_c("🏠 Home", ActionKind.HOME),),)


def home() -> Reply:
    return Reply(
        "🏠 **Community Ideas Hub**\n\n"
        "💡 Share your ideas with the community\n"
        "💬 Discuss ideas with others\n"
        "💌 Message idea writers privately\n\n"
        "Choose an option below:",
        home_controls(),
    )


def help_text(is_admin: bool = False) -> Reply:
    lines = [
        "🆘 **Community Bot Help**",
        "",
        "**Public comments** are visible to everyone.",
        "**Private messages** go only to the idea writer, who can reply anonymously.",
        "",
        "/start - Main menu",
        "/submit - Submit an idea",
        "/ideas - Browse ideas",
        "/cancel - Abandon what you were writing",
        "/help - This message",
    ]
    if is_admin:
        lines += [
            "",
            "**Moderators**",
            "/pending - Ideas waiting for review",
            "/block <user id> - Block a user",
            "/unblock <user id> - Unblock a user",
            "/reconcile - Re-post approved ideas missing from the channel",
        ]
    return Reply("\n".join(lines), home_controls())


def prompt(text: str) -> Reply:
    """Asks for the next free-text message; the only way out is Home."""
    return Reply(text, home_only())


def done(text: str) -> Reply:
    return Reply(text, home_controls())


def review_controls(submission: Submission) -> Controls:
    return (
        (
            _c("✅ Approve", ActionKind.APPROVE, submission.submission_id),
            _c("❌ Reject", ActionKind.REJECT, submission.submission_id),
        ),
        (_c("✉️ Message user", ActionKind.MESSAGE_USER, str(submission.author_id)),),
    )


def admin_new_submission(submission: Submission) -> str:
    tags = f"\nTags: {' '.join(submission.hashtags)}" if submission.hashtags else ""
    return truncate(
        "💡 **NEW IDEA SUBMISSION**\n\n"
        f"👤 From: {submission.author_handle or 'unknown'}\n"
        f"🆔 User ID: {submission.author_id}\n\n"
        f"**Idea Text:**\n{submission.text}{tags}",
        MAX_MESSAGE_LENGTH,
    )


def channel_post(submission: Submission, bot_handle: str = "") -> str:
    hint = f"\n💌 DM {bot_handle} to share your own ideas." if bot_handle else ""
    return truncate(f"💡 **Idea #{submission.number}**\n\n{submission.text}\n\n{DIVIDER}{hint}", MAX_MESSAGE_LENGTH)


def channel_controls(submission: Submission, comment_count: Optional[int] = None) -> Controls:
    count = submission.comment_count if comment_count is None else comment_count
    return ((_c(f"💬 Comments ({count})", ActionKind.VIEW, submission.submission_id),),)


def approval_notice(submission: Submission) -> str:
    return truncate(
        f"🎉 **Your Idea #{submission.number} Was Approved!**\n\n"
        "Your idea has been posted to the community channel!\n\n"
        f"💡 **Your Idea:**\n{submission.text}",
        MAX_MESSAGE_LENGTH,
    )


def rejection_notice(reason: str) -> str:
    return f"❌ **Idea Not Approved**\n\nReason: {reason}\n\nYou can submit a new idea."


def achievement_notice(title: str) -> str:
    return f"🏆 Achievement unlocked: **{title}**"


def browse(submissions: Iterable[Submission]) -> Reply:
    items = list(submissions)
    if not items:
        return Reply(
            "📝 No ideas yet. Be the first to submit one!",
            ((_c("💡 Submit First Idea", ActionKind.SUBMIT),), home_only()[0]),
        )
    lines = ["📋 **Community Ideas**", "", "Select an idea to view:", ""]
    rows: list[tuple[Control, ...]] = []
    for s in items:
        lines.append(f"#{s.number} - 💬 {s.comment_count} comments")
        rows.append((_c(f"#{s.number} - 💬 {s.comment_count}", ActionKind.VIEW, s.submission_id),))
    rows.append(home_only()[0])
    return Reply("\n".join(lines), tuple(rows))


def detail(submission: Submission, comments: list[Comment]) -> Reply:
    parts = [f"💡 **Idea #{submission.number}**", "", submission.text, "", DIVIDER, f"💬 **Comments ({len(comments)})**", ""]
    if not comments:
        parts.append("No comments yet. Be the first to comment!")
    else:
        parts.extend(f"{i}. {c.text}\n" for i, c in enumerate(comments, start=1))
    controls: Controls = (
        (
            _c("💬 Add Comment", ActionKind.COMMENT, submission.submission_id),
            _c("💌 Message Writer", ActionKind.MESSAGE_WRITER, submission.submission_id),
        ),
        (_c("📋 Browse Ideas", ActionKind.BROWSE), _c("🏠 Home", ActionKind.HOME)),
    )
    return Reply(truncate("\n".join(parts), MAX_MESSAGE_LENGTH), controls)


def pending(submissions: Iterable[Submission]) -> Reply:
    items = list(submissions)
    if not items:
        return done("✅ Nothing waiting for review.")
    lines = ["🗂 **Pending ideas**", ""]
    rows: list[tuple[Control, ...]] = []
    for s in items:
        lines.append(f"• {truncate(s.text, 80)} ({s.author_handle or s.author_id})")
        rows.append(
            (
                _c(f"✅ {truncate(s.text, 30)}", ActionKind.APPROVE, s.submission_id),
                _c("❌ Reject", ActionKind.REJECT, s.submission_id),
            )
        )
    return Reply("\n".join(lines), tuple(rows[:5]))


def comment_notice(submission: Submission, text: str) -> str:
    return truncate(f"💬 **New comment on your Idea #{submission.number}**\n\n{text}", MAX_MESSAGE_LENGTH)


def private_relay(submission: Submission, text: str, *, is_reply: bool = False) -> str:
    header = "💌 **Anonymous reply**" if is_reply else "💌 **New Private Message**"
    return truncate(
        f"{header}\n\n"
        f"About Idea #{submission.number}:\n{truncate(submission.text, 300)}\n\n"
        f"📝 **Message:**\n{text}",
        MAX_MESSAGE_LENGTH,
    )


def reply_private_controls(comment: Comment) -> Controls:
    return ((_c("💌 Reply Anonymously", ActionKind.REPLY_PRIVATE, comment.comment_id),), home_only()[0])


def admin_activity(kind: str, submission: Submission, comment: Comment, recipient_handle: Optional[str] = None) -> str:
    to = f"\n👥 To: {recipient_handle}" if recipient_handle else ""
    return truncate(
        f"{kind}\n\n"
        f"👤 From: {comment.author_handle or comment.author_id}\n"
        f"💡 Idea #{submission.number}{to}\n"
        f"**Text:** {comment.text}",
        MAX_MESSAGE_LENGTH,
    )


def moderator_message(text: str) -> str:
    return truncate(f"📨 **Message from the moderators**\n\n{text}", MAX_MESSAGE_LENGTH)
