"""Inbound events and button action tokens.

Buttons carry an action token in their ``custom_id``: ``<kind>`` for plain
navigation or ``<kind>:<entity id>`` for actions bound to a submission, a
comment or a user. Tokens are decoded exactly once, at the boundary, into an
:class:`Action`; nothing past the cog looks at raw strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .constants import MAX_CUSTOM_ID

# Stable custom_id namespace so foreign components are never mistaken for ours
NAMESPACE = "ih"


class ActionKind(str, Enum):
    HOME = "home"
    SUBMIT = "submit"
    BROWSE = "browse"
    HELP = "help"
    VIEW = "view"
    COMMENT = "comment"
    MESSAGE_WRITER = "message_writer"
    REPLY_PRIVATE = "reply_private"
    APPROVE = "approve"
    REJECT = "reject"
    MESSAGE_USER = "message_user"


_NEEDS_ENTITY = {
    ActionKind.VIEW,
    ActionKind.COMMENT,
    ActionKind.MESSAGE_WRITER,
    ActionKind.REPLY_PRIVATE,
    ActionKind.APPROVE,
    ActionKind.REJECT,
    ActionKind.MESSAGE_USER,
}

ADMIN_ACTIONS = frozenset({ActionKind.APPROVE, ActionKind.REJECT, ActionKind.MESSAGE_USER})


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    entity_id: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.kind in _NEEDS_ENTITY) != bool(self.entity_id):
            raise ValueError(f"action {self.kind.value!r} has invalid entity id {self.entity_id!r}")
        if self.kind is ActionKind.MESSAGE_USER and not str(self.entity_id).isdigit():
            raise ValueError(f"message_user needs a numeric user id, got {self.entity_id!r}")

    def encode(self) -> str:
        token = f"{NAMESPACE}:{self.kind.value}"
        if self.entity_id:
            token = f"{token}:{self.entity_id}"
        if len(token) > MAX_CUSTOM_ID:
            raise ValueError(f"action token too long ({len(token)} chars)")
        return token

    @classmethod
    def decode(cls, token: str) -> Optional["Action"]:
        """Parse a custom_id; returns None for anything that is not ours."""
        prefix, sep, rest = (token or "").partition(":")
        if prefix != NAMESPACE or not sep:
            return None
        raw_kind, _, entity = rest.partition(":")
        try:
            kind = ActionKind(raw_kind)
        except ValueError:
            return None
        try:
            return cls(kind, entity or None)
        except ValueError:
            return None

    @property
    def user_id(self) -> int:
        """Entity id as a user id, for ``message_user`` actions."""
        return int(self.entity_id or 0)


@dataclass(frozen=True)
class Control:
    label: str
    action: Action


# Rows of buttons, top to bottom
Controls = tuple[tuple[Control, ...], ...]


@dataclass(frozen=True)
class Command:
    name: str
    from_user_id: int
    chat_id: int = 0
    argument: str = ""
    handle: Optional[str] = None

    @classmethod
    def parse(cls, text: str, from_user_id: int, chat_id: int = 0, handle: Optional[str] = None) -> Optional["Command"]:
        """Parse ``/name arg`` or ``!name arg``; None when the text is not a command."""
        text = (text or "").strip()
        if len(text) < 2 or text[0] not in "/!":
            return None
        name, _, argument = text[1:].partition(" ")
        name = name.split("@", 1)[0].lower()
        if not name.isidentifier():
            return None
        return cls(name=name, argument=argument.strip(), from_user_id=int(from_user_id), chat_id=int(chat_id), handle=handle)


@dataclass(frozen=True)
class FreeText:
    text: str
    from_user_id: int
    chat_id: int = 0
    handle: Optional[str] = None


@dataclass(frozen=True)
class ButtonPress:
    action: Action
    from_user_id: int
    message_ref: Optional[str] = None
    handle: Optional[str] = None


InboundEvent = Union[Command, FreeText, ButtonPress]


@dataclass(frozen=True)
class Reply:
    """What the originating user sees next: text plus the controls under it."""

    text: str
    controls: Controls = ()
