"""Routes every inbound event to the flow it belongs to.

Commands and buttons start flows (or just show a menu); free text is
consumed by whatever flow the user's session slot is waiting on, or treated
as a new idea when the slot is idle. Handlers raise :mod:`ideahub.errors`
exceptions; :meth:`ConversationRouter.handle` turns them into replies and
decides what happens to the session:

* validation, cooldown and rate-limit errors keep the session so the user can
  simply resend;
* NotFound / NotPermitted abort the flow and clear it;
* success clears it.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from ..config import Settings
from ..constants import BROWSE_PAGE_SIZE, ERROR_MESSAGES, MENU_LABELS
from ..errors import (
    AllocationFailed,
    CooldownActive,
    IdeaHubError,
    NotFound,
    NotPermitted,
    PublishFailed,
    RateLimited,
    ValidationError,
)
from ..events import ADMIN_ACTIONS, Action, ActionKind, ButtonPress, Command, FreeText, InboundEvent, Reply
from ..models import Visibility
from ..ui import menus
from .comments import CommentService
from .fanout import NotificationFanout
from .lifecycle import SubmissionLifecycle
from .sessions import (
    AwaitingAdminMessage,
    AwaitingComment,
    AwaitingPrivateMessage,
    AwaitingRejectionReason,
    AwaitingSubmission,
    Idle,
    SessionState,
    SessionTable,
)
from .users_store import UsersStore

log = logging.getLogger("ideahub.conversation")

_RETRYABLE = (ValidationError, CooldownActive, RateLimited)
_ABORTING = (NotFound, NotPermitted)


class ConversationRouter:
    def __init__(
        self,
        settings: Settings,
        *,
        sessions: SessionTable,
        lifecycle: SubmissionLifecycle,
        comments: CommentService,
        users: UsersStore,
        fanout: NotificationFanout,
    ) -> None:
        self.settings = settings
        self.sessions = sessions
        self._lifecycle = lifecycle
        self._comments = comments
        self._users = users
        self._fanout = fanout

        self._text_handlers: dict[type, Callable[[FreeText, SessionState], Awaitable[Reply]]] = {
            AwaitingSubmission: self._text_submission,
            AwaitingComment: self._text_comment,
            AwaitingPrivateMessage: self._text_private,
            AwaitingRejectionReason: self._text_rejection,
            AwaitingAdminMessage: self._text_admin_message,
        }
        self._commands: dict[str, Callable[[Command], Awaitable[Reply]]] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "submit": self._cmd_submit,
            "ideas": self._cmd_ideas,
            "cancel": self._cmd_cancel,
            "pending": self._cmd_pending,
            "block": self._cmd_block,
            "unblock": self._cmd_unblock,
            "reconcile": self._cmd_reconcile,
        }
        self._admin_commands = {"pending", "block", "unblock", "reconcile"}

    def _is_admin(self, user_id: int) -> bool:
        return self.settings.is_admin(user_id)

    def _require_admin(self, user_id: int) -> None:
        if not self._is_admin(user_id):
            raise NotPermitted(ERROR_MESSAGES["not_admin"])

    async def handle(self, event: InboundEvent) -> Reply:
        uid = event.from_user_id
        # Read only: the user row is written by whichever flow accepts the input.
        user = await self._users.get(uid)
        if user is not None and not user.active and not self._is_admin(uid):
            self.sessions.clear(uid)
            return Reply(ERROR_MESSAGES["blocked"])

        try:
            if isinstance(event, Command):
                return await self._on_command(event)
            if isinstance(event, ButtonPress):
                return await self._on_button(event)
            return await self._on_text(event)
        except _RETRYABLE as e:
            state = self.sessions.get(uid)
            return menus.prompt(f"⚠️ {e.message}") if not isinstance(state, Idle) else menus.done(f"⚠️ {e.message}")
        except _ABORTING as e:
            self.sessions.clear(uid)
            return menus.done(f"❌ {e.message}")
        except (AllocationFailed, PublishFailed) as e:
            log.warning("Moderator %s: %s", uid, e.message)
            return menus.done(f"⚠️ {e.message}")
        except IdeaHubError as e:
            log.warning("Unhandled %s for %s: %s", e.code, uid, e.message)
            return menus.done(f"❌ {e.message}")
        except Exception:
            log.exception("Error handling %s from %s", type(event).__name__, uid)
            return menus.done(ERROR_MESSAGES["unexpected"])

    # Free text

    async def _on_text(self, event: FreeText) -> Reply:
        uid = event.from_user_id
        state = self.sessions.get(uid)
        if isinstance(state, Idle):
            command = MENU_LABELS.get(event.text.strip().lower())
            if command:
                return await self._on_command(Command(command, uid, event.chat_id, handle=event.handle))
            return await self._text_submission(event, state)

        reply = await self._text_handlers[type(state)](event, state)
        # Only reached on success; a failing handler raised and kept the slot.
        self.sessions.clear(uid)
        return reply

    async def _text_submission(self, event: FreeText, state: SessionState) -> Reply:
        await self._lifecycle.submit(event.from_user_id, event.text, event.handle)
        return menus.done(
            "✅ **Idea Submitted!**\n\n"
            "Your idea has been sent for admin approval.\n"
            "You'll be notified when it's approved."
        )

    async def _text_comment(self, event: FreeText, state: SessionState) -> Reply:
        assert isinstance(state, AwaitingComment)
        await self._comments.add_comment(
            state.submission_id, event.from_user_id, event.text, Visibility.PUBLIC, handle=event.handle
        )
        return menus.done("✅ **Comment Added!**\n\nYour comment is now visible to everyone.")

    async def _text_private(self, event: FreeText, state: SessionState) -> Reply:
        assert isinstance(state, AwaitingPrivateMessage)
        await self._comments.add_comment(
            state.submission_id,
            event.from_user_id,
            event.text,
            Visibility.PRIVATE,
            reply_to=state.reply_to,
            handle=event.handle,
        )
        return menus.done("✅ **Private Message Sent!**\n\nYour message was delivered anonymously.")

    async def _text_rejection(self, event: FreeText, state: SessionState) -> Reply:
        assert isinstance(state, AwaitingRejectionReason)
        await self._lifecycle.reject(state.submission_id, event.from_user_id, event.text)
        return menus.done("✅ Idea rejected.")

    async def _text_admin_message(self, event: FreeText, state: SessionState) -> Reply:
        assert isinstance(state, AwaitingAdminMessage)
        self._require_admin(event.from_user_id)
        text = event.text.strip()
        if len(text) < self.settings.min_comment_length:
            raise ValidationError("That message is too short.")
        if len(text) > self.settings.max_comment_length:
            raise ValidationError(f"Keep it under {self.settings.max_comment_length} characters.")
        delivered = await self._fanout.notify_user(state.target_user_id, menus.moderator_message(text), menus.home_controls())
        if not delivered:
            return menus.done(f"⚠️ Could not deliver the message to {state.target_user_id}.")
        return menus.done("✅ Message sent.")

    # Commands

    async def _on_command(self, command: Command) -> Reply:
        handler = self._commands.get(command.name)
        if handler is None:
            return menus.done(ERROR_MESSAGES["unknown_command"])
        if command.name in self._admin_commands:
            self._require_admin(command.from_user_id)
        return await handler(command)

    async def _cmd_start(self, command: Command) -> Reply:
        self.sessions.clear(command.from_user_id)
        return menus.home()

    async def _cmd_help(self, command: Command) -> Reply:
        return menus.help_text(self._is_admin(command.from_user_id))

    async def _cmd_submit(self, command: Command) -> Reply:
        self.sessions.begin(command.from_user_id, AwaitingSubmission())
        return menus.prompt(
            "💡 **Submit New Idea**\n\nPlease write your idea below. It will be reviewed by admin before posting."
        )

    async def _cmd_ideas(self, command: Command) -> Reply:
        return menus.browse(await self._lifecycle.list_recent(BROWSE_PAGE_SIZE))

    async def _cmd_cancel(self, command: Command) -> Reply:
        self.sessions.clear(command.from_user_id)
        return menus.done("Cancelled.")

    async def _cmd_pending(self, command: Command) -> Reply:
        return menus.pending(await self._lifecycle.list_pending())

    def _parse_user_arg(self, command: Command) -> int:
        try:
            return int(command.argument.split()[0])
        except (IndexError, ValueError):
            raise ValidationError(f"Usage: /{command.name} <user id>") from None

    async def _cmd_block(self, command: Command) -> Reply:
        target = self._parse_user_arg(command)
        if self._is_admin(target):
            raise ValidationError("Moderators can't be blocked.")
        await self._users.ensure(target)
        await self._users.set_active(target, False)
        self.sessions.clear(target)
        log.info("User %s blocked by %s", target, command.from_user_id)
        return menus.done(f"🚫 User {target} blocked.")

    async def _cmd_unblock(self, command: Command) -> Reply:
        target = self._parse_user_arg(command)
        if not await self._users.set_active(target, True):
            raise NotFound(f"User {target} has never used the bot.")
        log.info("User %s unblocked by %s", target, command.from_user_id)
        return menus.done(f"✅ User {target} unblocked.")

    async def _cmd_reconcile(self, command: Command) -> Reply:
        posted = await self._lifecycle.republish_missing(command.from_user_id)
        if not posted:
            return menus.done("✅ Every approved idea is already in the channel.")
        numbers = ", ".join(f"#{s.number}" for s in posted)
        return menus.done(f"✅ Re-posted {len(posted)} idea(s): {numbers}")

    # Buttons

    async def _on_button(self, press: ButtonPress) -> Reply:
        uid = press.from_user_id
        action = press.action
        kind = action.kind
        if kind in ADMIN_ACTIONS:
            self._require_admin(uid)

        if kind is ActionKind.HOME:
            self.sessions.clear(uid)
            return menus.home()
        if kind is ActionKind.SUBMIT:
            return await self._cmd_submit(Command("submit", uid))
        if kind is ActionKind.BROWSE:
            return await self._cmd_ideas(Command("ideas", uid))
        if kind is ActionKind.HELP:
            return await self._cmd_help(Command("help", uid))

        entity = action.entity_id or ""
        if kind is ActionKind.VIEW:
            submission = await self._lifecycle.get_approved(entity)
            return menus.detail(submission, await self._comments.list_public(entity))

        if kind is ActionKind.COMMENT:
            submission = await self._lifecycle.get_approved(entity)
            self.sessions.begin(uid, AwaitingComment(entity))
            return menus.prompt(
                f"💬 **Add Comment to Idea #{submission.number}**\n\n"
                f"**Idea:** {submission.text}\n\n"
                "Your comment will be visible to everyone.\nPlease write your comment below:"
            )

        if kind is ActionKind.MESSAGE_WRITER:
            submission = await self._lifecycle.get_approved(entity)
            if submission.author_id == uid:
                raise ValidationError("That's your own idea.")
            self.sessions.begin(uid, AwaitingPrivateMessage(entity))
            return menus.prompt(
                f"💌 **Private Message to Idea Writer**\n\n"
                f"**Idea #{submission.number}:** {submission.text}\n\n"
                "Your message will be sent privately to the idea writer.\n"
                "Only they will see it, and they won't see who you are.\n\n"
                "Please write your private message below:"
            )

        if kind is ActionKind.REPLY_PRIVATE:
            original = await self._comments.get_private(entity)
            if original.recipient_id != uid:
                raise NotPermitted("You can only reply to messages sent to you.")
            self.sessions.begin(uid, AwaitingPrivateMessage(original.submission_id, reply_to=original.comment_id))
            return menus.prompt("💌 **Anonymous Reply**\n\nWrite your reply below. Your identity stays hidden.")

        if kind is ActionKind.APPROVE:
            submission = await self._lifecycle.approve(entity, uid)
            return menus.done(f"✅ Idea #{submission.number} approved and posted!")

        if kind is ActionKind.REJECT:
            await self._lifecycle.get_pending(entity)
            self.sessions.begin(uid, AwaitingRejectionReason(entity))
            return menus.prompt("❌ Rejecting idea\n\nPlease send the rejection reason:")

        if kind is ActionKind.MESSAGE_USER:
            self.sessions.begin(uid, AwaitingAdminMessage(action.user_id))
            return menus.prompt(f"✉️ Write the message for user {action.user_id}:")

        return menus.done(ERROR_MESSAGES["unknown_action"])

    async def handle_raw_button(self, token: str, from_user_id: int, handle: Optional[str] = None) -> Reply:
        """Entry point for transports that only have the raw custom_id."""
        action = Action.decode(token)
        if action is None:
            return menus.done(ERROR_MESSAGES["unknown_action"])
        return await self.handle(ButtonPress(action, from_user_id, handle=handle))
