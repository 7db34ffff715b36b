"""Discord implementations of the Transport and Publisher contracts."""

from __future__ import annotations

import logging
from typing import Optional

import discord

from .errors import DeliveryFailed, PublishFailed
from .events import Controls
from .text import truncate
from .constants import MAX_MESSAGE_LENGTH
from .ui.views import build_view

log = logging.getLogger("ideahub.transport")

_NO_PINGS = discord.AllowedMentions(everyone=False, roles=False, users=False)


class DiscordTransport:
    """Sends direct messages to users."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _resolve(self, user_id: int) -> discord.abc.User:
        user = self._client.get_user(int(user_id))
        if user is not None:
            return user
        try:
            return await self._client.fetch_user(int(user_id))
        except discord.NotFound as e:
            raise DeliveryFailed(user_id, "unknown user") from e
        except discord.HTTPException as e:
            raise DeliveryFailed(user_id, f"lookup failed ({e.status})") from e

    async def send(self, recipient_id: int, text: str, controls: Optional[Controls] = None) -> None:
        user = await self._resolve(recipient_id)
        view = build_view(controls)
        try:
            if view is None:
                await user.send(truncate(text, MAX_MESSAGE_LENGTH), allowed_mentions=_NO_PINGS)
            else:
                await user.send(truncate(text, MAX_MESSAGE_LENGTH), view=view, allowed_mentions=_NO_PINGS)
        except discord.Forbidden as e:
            # DMs closed or the user blocked the bot
            raise DeliveryFailed(recipient_id, "direct messages closed") from e
        except discord.HTTPException as e:
            raise DeliveryFailed(recipient_id, f"HTTP {e.status}") from e


class DiscordPublisher:
    """Posts approved ideas to the broadcast channel."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self._client.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self._client.fetch_channel(int(channel_id))
            except discord.HTTPException as e:
                raise PublishFailed(f"Broadcast channel {channel_id} is unavailable.") from e
        if not isinstance(channel, discord.abc.Messageable):
            raise PublishFailed(f"Channel {channel_id} can't receive messages.")
        return channel

    async def post(self, channel_id: int, text: str, controls: Optional[Controls] = None) -> str:
        channel = await self._channel(channel_id)
        view = build_view(controls)
        try:
            if view is None:
                msg = await channel.send(truncate(text, MAX_MESSAGE_LENGTH), allowed_mentions=_NO_PINGS)
            else:
                msg = await channel.send(truncate(text, MAX_MESSAGE_LENGTH), view=view, allowed_mentions=_NO_PINGS)
        except discord.HTTPException as e:
            raise PublishFailed(f"Posting to channel {channel_id} failed (HTTP {e.status}).") from e
        return str(msg.id)

    async def update_controls(self, channel_id: int, message_ref: str, controls: Controls) -> None:
        channel = await self._channel(channel_id)
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise PublishFailed(f"Channel {channel_id} doesn't support editing posts.")
        try:
            await channel.get_partial_message(int(message_ref)).edit(view=build_view(controls))
        except discord.HTTPException as e:
            raise PublishFailed(f"Editing post {message_ref} failed (HTTP {e.status}).") from e
