from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..constants import MAX_MESSAGE_LENGTH
from ..events import Action, ButtonPress, Command, FreeText, InboundEvent, Reply
from ..services.conversation import ConversationRouter
from ..text import truncate
from ..ui.views import build_view

log = logging.getLogger("ideahub.cog.ideas")


def _handle_of(user: discord.abc.User) -> str:
    return f"@{user.name}"


class IdeasCog(commands.Cog):
    """Bridges Discord events to the conversation router.

    Free text is only read in direct messages; in guild channels the bot only
    reacts to slash commands and to buttons on its own posts, and continues
    the conversation in the user's DMs.
    """

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self.router: ConversationRouter = bot.router  # type: ignore[attr-defined]

    async def cog_load(self) -> None:
        log.info("Loaded %s", self.__class__.__name__)

    async def _dispatch(self, event: InboundEvent) -> Reply:
        return await self.router.handle(event)

    @commands.Cog.listener("on_message")
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is not None:
            return
        content = (message.content or "").strip()
        if not content:
            return

        handle = _handle_of(message.author)
        event: InboundEvent
        command = Command.parse(content, message.author.id, message.channel.id, handle=handle)
        if command is not None:
            event = command
        else:
            event = FreeText(content, message.author.id, message.channel.id, handle=handle)

        reply = await self._dispatch(event)
        try:
            await message.channel.send(truncate(reply.text, MAX_MESSAGE_LENGTH), **self._view_kwargs(reply))
        except discord.HTTPException as e:
            log.warning("Could not reply to %s: %s", message.author.id, e)

    @commands.Cog.listener("on_interaction")
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.component:
            return
        custom_id = (interaction.data or {}).get("custom_id", "")
        action = Action.decode(str(custom_id))
        if action is None:
            # Not one of ours (or a stale token we no longer understand)
            return

        message_ref = str(interaction.message.id) if interaction.message else None
        reply = await self._dispatch(
            ButtonPress(action, interaction.user.id, message_ref=message_ref, handle=_handle_of(interaction.user))
        )
        await self._respond(interaction, reply, edit_in_place=interaction.guild is None)

    def _view_kwargs(self, reply: Reply) -> dict:
        view = build_view(reply.controls)
        return {"view": view} if view is not None else {}

    async def _respond(self, interaction: discord.Interaction, reply: Reply, *, edit_in_place: bool) -> None:
        """Answer an interaction.

        In DMs the menu message is replaced, like a page change. In guilds the
        conversation moves to the user's DMs so free-text replies can follow;
        if DMs are closed the reply is shown ephemerally instead.
        """
        text = truncate(reply.text, MAX_MESSAGE_LENGTH)
        kwargs = self._view_kwargs(reply)
        try:
            if edit_in_place:
                if "view" not in kwargs:
                    kwargs["view"] = None
                await interaction.response.edit_message(content=text, **kwargs)
                return

            await interaction.response.defer(ephemeral=True, thinking=True)
            try:
                await interaction.user.send(text, **kwargs)
            except discord.HTTPException:
                await interaction.followup.send(text, ephemeral=True, **kwargs)
                return
            await interaction.followup.send("📬 Check your direct messages.", ephemeral=True)
        except discord.HTTPException as e:
            log.warning("Failed to answer interaction from %s: %s", interaction.user.id, e)

    async def _slash(self, interaction: discord.Interaction, name: str, argument: Optional[str] = None) -> None:
        channel_id = interaction.channel.id if interaction.channel else 0
        reply = await self._dispatch(
            Command(name, interaction.user.id, channel_id, argument=argument or "", handle=_handle_of(interaction.user))
        )
        if interaction.guild is None:
            try:
                await interaction.response.send_message(truncate(reply.text, MAX_MESSAGE_LENGTH), **self._view_kwargs(reply))
            except discord.HTTPException as e:
                log.warning("Failed to answer /%s from %s: %s", name, interaction.user.id, e)
            return
        await self._respond(interaction, reply, edit_in_place=False)

    @app_commands.command(name="start", description="Open the ideas hub menu.")
    async def start(self, interaction: discord.Interaction) -> None:
        await self._slash(interaction, "start")

    @app_commands.command(name="submit", description="Submit a new idea for review.")
    async def submit(self, interaction: discord.Interaction) -> None:
        await self._slash(interaction, "submit")

    @app_commands.command(name="ideas", description="Browse published ideas.")
    async def ideas(self, interaction: discord.Interaction) -> None:
        await self._slash(interaction, "ideas")

    @app_commands.command(name="cancel", description="Abandon what you were writing.")
    async def cancel(self, interaction: discord.Interaction) -> None:
        await self._slash(interaction, "cancel")

    @app_commands.command(name="help", description="How the ideas hub works.")
    async def help(self, interaction: discord.Interaction) -> None:
        await self._slash(interaction, "help")
