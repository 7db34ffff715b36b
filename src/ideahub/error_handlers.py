from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from .constants import ERROR_MESSAGES
from .errors import IdeaHubError

log = logging.getLogger("ideahub.error_handlers")


async def _safe_send(interaction: discord.Interaction, content: str) -> None:
    try:
        if interaction.response.is_done():
            await interaction.followup.send(content, ephemeral=True)
        else:
            await interaction.response.send_message(content, ephemeral=True)
    except discord.HTTPException as e:
        log.error("Failed to report error to %s: %s", interaction.user.id, e)


class ErrorHandler(commands.Cog):
    """Last-resort handling for errors that escape the conversation router."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self._previous_handler = bot.tree.on_error
        bot.tree.on_error = self.on_app_command_error

    async def cog_unload(self) -> None:
        self.bot.tree.on_error = self._previous_handler

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.CommandNotFound):
            return  # DM text commands are parsed by the ideas cog, not the prefix framework
        log.error("Unexpected error in command %s: %s", ctx.command, error, exc_info=error)

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        original = getattr(error, "original", error)
        if isinstance(original, IdeaHubError):
            await _safe_send(interaction, original.message)
            return

        if isinstance(error, app_commands.CommandOnCooldown):
            await _safe_send(interaction, f"This command is on cooldown. Try again in {error.retry_after:.1f}s")
            return

        log.error("Unexpected error in app command %s: %s", interaction.command, error, exc_info=error)
        await _safe_send(interaction, ERROR_MESSAGES["unexpected"])


async def setup_error_handlers(bot: commands.Bot) -> None:
    """Setup error handlers for the bot."""
    await bot.add_cog(ErrorHandler(bot))
