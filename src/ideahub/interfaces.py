"""
Interface contracts for the outbound collaborators.

The core never talks to Discord directly: it sends through a ``Transport``
and posts to the broadcast channel through a ``Publisher``. The Discord
adapters live in ``ideahub.transport``; in-memory fakes for tests live in
``ideahub.testing.fakes``.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from .events import Controls


@runtime_checkable
class Transport(Protocol):
    """Direct-message delivery to a single user."""

    async def send(self, recipient_id: int, text: str, controls: Optional[Controls] = None) -> None:
        """Deliver ``text``; raises DeliveryFailed when the user cannot be reached."""
        ...


@runtime_checkable
class Publisher(Protocol):
    """Posting to the public broadcast channel."""

    async def post(self, channel_id: int, text: str, controls: Optional[Controls] = None) -> str:
        """Post and return a reference to the message; raises PublishFailed."""
        ...

    async def update_controls(self, channel_id: int, message_ref: str, controls: Controls) -> None:
        """Replace the controls under an earlier post; raises PublishFailed."""
        ...
