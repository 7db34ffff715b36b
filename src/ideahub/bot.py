from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .cogs.ideas import IdeasCog
from .config import Settings
from .database import initialize_database
from .error_handlers import setup_error_handlers
from .services.achievements_store import AchievementsStore
from .services.comments import CommentService
from .services.comments_store import CommentsStore
from .services.conversation import ConversationRouter
from .services.fanout import NotificationFanout
from .services.lifecycle import SubmissionLifecycle
from .services.rate_limits import RateLimiter
from .services.sequence import SequenceAllocator
from .services.sessions import SessionTable
from .services.stats import RuntimeStats
from .services.submissions_store import SubmissionsStore
from .services.users_store import UsersStore
from .transport import DiscordPublisher, DiscordTransport

log = logging.getLogger("ideahub.bot")


class _CommandSyncManager:
    def __init__(self, bot: "IdeaHubBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        async with self._lock:
            if self.bot.settings.sync_guild_id:
                guild = discord.Object(id=self.bot.settings.sync_guild_id)
                self.bot.tree.copy_global_to(guild=guild)
                await self.bot.tree.sync(guild=guild)
                log.info("Commands synced to guild %d", self.bot.settings.sync_guild_id)
            else:
                await self.bot.tree.sync()
                log.info("Commands synced globally")

            cmds = self.bot.tree.get_commands()
            log.info("Tree commands loaded: %d", len(cmds))
            for c in cmds:
                log.info(" - /%s", c.name)


class IdeaHubBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        # Free-text flows run in DMs and need the message body.
        intents.dm_messages = True
        intents.message_content = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=False),
            help_command=None,
        )

        self.settings = settings
        self.stats = RuntimeStats()

        path = settings.sqlite_path
        self.users_store = UsersStore(path)
        self.submissions_store = SubmissionsStore(path)
        self.comments_store = CommentsStore(path, self.submissions_store)
        self.achievements_store = AchievementsStore(path)
        self.rate_limiter = RateLimiter(path)
        self.allocator = SequenceAllocator(
            path, self.submissions_store, max_retries=settings.allocator_max_retries
        )

        self.transport = DiscordTransport(self)
        self.publisher = DiscordPublisher(self)
        self.fanout = NotificationFanout(self.transport, settings.admin_ids, self.stats)

        self.lifecycle = SubmissionLifecycle(
            settings,
            submissions=self.submissions_store,
            users=self.users_store,
            allocator=self.allocator,
            rate_limiter=self.rate_limiter,
            achievements=self.achievements_store,
            fanout=self.fanout,
            publisher=self.publisher,
            stats=self.stats,
        )
        self.comments = CommentService(
            settings,
            comments=self.comments_store,
            submissions=self.submissions_store,
            users=self.users_store,
            rate_limiter=self.rate_limiter,
            fanout=self.fanout,
            publisher=self.publisher,
            stats=self.stats,
        )
        self.router = ConversationRouter(
            settings,
            sessions=SessionTable(ttl_seconds=settings.session_ttl_seconds),
            lifecycle=self.lifecycle,
            comments=self.comments,
            users=self.users_store,
            fanout=self.fanout,
        )
        self._sync_mgr = _CommandSyncManager(self)

    async def setup_hook(self) -> None:
        # Order matters: the allocator bootstraps from the submissions table.
        stores = [
            self.users_store,
            self.submissions_store,
            self.comments_store,
            self.achievements_store,
            self.rate_limiter,
            self.allocator,
        ]
        await initialize_database(self.settings.sqlite_path, stores)

        await setup_error_handlers(self)

        await self.add_cog(IdeasCog(self))
        log.info("Loaded cog: IdeasCog")

        if not self.settings.channel_id:
            log.warning("CHANNEL_ID is not set; approved ideas cannot be published")

        await self._sync_mgr.sync_startup()
        log.info("Command sync complete")

    async def on_ready(self) -> None:
        log.info(
            "Logged in as %s (admins=%d, channel=%s)",
            self.user,
            len(self.settings.admin_ids),
            self.settings.channel_id,
        )
