from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import DeliveryFailed, PublishFailed
from ..events import Controls


@dataclass
class Sent:
    recipient_id: int
    text: str
    controls: Optional[Controls] = None


@dataclass
class Posted:
    channel_id: int
    text: str
    controls: Optional[Controls] = None
    ref: str = ""


class FakeTransport:
    """In-memory Transport. Recipients in ``failing`` raise DeliveryFailed."""

    def __init__(self, failing: Iterable[int] = ()) -> None:
        self.failing = {int(x) for x in failing}
        self.sent: list[Sent] = []

    async def send(self, recipient_id: int, text: str, controls: Optional[Controls] = None) -> None:
        if int(recipient_id) in self.failing:
            raise DeliveryFailed(recipient_id, "cannot send messages to this user")
        self.sent.append(Sent(int(recipient_id), text, controls))

    def to(self, recipient_id: int) -> list[Sent]:
        return [s for s in self.sent if s.recipient_id == recipient_id]

    def __repr__(self) -> str:
        return f"<FakeTransport sent={len(self.sent)} failing={sorted(self.failing)}>"


@dataclass
class FakePublisher:
    """In-memory Publisher that hands out sequential message refs."""

    fail_posts: bool = False
    fail_updates: bool = False
    posts: list[Posted] = field(default_factory=list)
    updates: list[tuple[str, Controls]] = field(default_factory=list)
    _next_ref: int = 1000

    async def post(self, channel_id: int, text: str, controls: Optional[Controls] = None) -> str:
        if self.fail_posts:
            raise PublishFailed("channel unavailable")
        ref = str(self._next_ref)
        self._next_ref += 1
        self.posts.append(Posted(channel_id, text, controls, ref))
        return ref

    async def update_controls(self, channel_id: int, message_ref: str, controls: Controls) -> None:
        if self.fail_updates:
            raise PublishFailed("message not found")
        self.updates.append((message_ref, controls))
