"""Per-user conversational state.

Each user has exactly one slot holding one tagged state. Starting any flow
replaces whatever was there, so "two flows at once" cannot be represented.
Sessions are process-local; losing them on restart only drops half-written
messages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

log = logging.getLogger("ideahub.sessions")


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingSubmission:
    pass


@dataclass(frozen=True)
class AwaitingComment:
    submission_id: str


@dataclass(frozen=True)
class AwaitingPrivateMessage:
    submission_id: str
    # Set when answering a private message instead of writing to the idea's author
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class AwaitingRejectionReason:
    submission_id: str


@dataclass(frozen=True)
class AwaitingAdminMessage:
    target_user_id: int


SessionState = Union[
    Idle,
    AwaitingSubmission,
    AwaitingComment,
    AwaitingPrivateMessage,
    AwaitingRejectionReason,
    AwaitingAdminMessage,
]

IDLE = Idle()


@dataclass
class _Slot:
    state: SessionState
    started_at: float


class SessionTable:
    """user id -> current session state, last write wins."""

    def __init__(self, ttl_seconds: int = 0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = max(0, int(ttl_seconds))
        self._clock = clock
        self._slots: dict[int, _Slot] = {}

    def get(self, user_id: int) -> SessionState:
        slot = self._slots.get(int(user_id))
        if slot is None:
            return IDLE
        if self._ttl and self._clock() - slot.started_at > self._ttl:
            log.debug("Session for %s expired in %s", user_id, type(slot.state).__name__)
            self._slots.pop(int(user_id), None)
            return IDLE
        return slot.state

    def begin(self, user_id: int, state: SessionState) -> None:
        if isinstance(state, Idle):
            self.clear(user_id)
            return
        previous = self.get(user_id)
        if not isinstance(previous, Idle) and previous != state:
            log.debug("User %s abandoned %s for %s", user_id, type(previous).__name__, type(state).__name__)
        self._slots[int(user_id)] = _Slot(state=state, started_at=self._clock())

    def clear(self, user_id: int) -> None:
        self._slots.pop(int(user_id), None)

    def __len__(self) -> int:
        return len(self._slots)
