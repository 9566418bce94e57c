"""
Discord bot client implementation.

This module contains the Discord client that keeps the channel directory
in sync with the gateway cache and posts announcements on behalf of the
admin panel.
"""

from typing import Optional

import discord
from discord.ext import commands

from discord_announcer.config import AppConfig
from discord_announcer.storage.store import DataStore
from discord_announcer.bot.channels import collect_text_channels
from discord_announcer.bot.dispatcher import AnnouncementDispatcher, AnnouncementResult
from discord_announcer.utils.logging import get_logger, log_discord_event


class AnnouncementBot(commands.Bot):
    """
    Discord client for the announcement service.

    Extends discord.py's Bot with the channel directory sync and the
    announcement dispatcher. The data store is owned by the caller and
    shared with the web server.

    Attributes:
        config: Application configuration
        store: Shared data store
        dispatcher: Sends and records announcements
    """

    def __init__(self, config: AppConfig, store: DataStore) -> None:
        """
        Initialize the bot.

        Args:
            config: Application configuration
            store: Shared data store
        """
        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        # Privileged; only needed for the text commands
        intents.message_content = config.discord.message_content_intent

        super().__init__(
            command_prefix=config.discord.command_prefix,
            intents=intents,
            help_command=None,
        )

        self.config = config
        self.store = store
        self.logger = get_logger(__name__)
        self.dispatcher = AnnouncementDispatcher(self, store)

    async def setup_hook(self) -> None:
        """Register commands and event handlers before connecting."""
        from discord_announcer.bot.commands import setup_commands
        from discord_announcer.bot.events import setup_events

        await setup_commands(self)
        await setup_events(self)

    async def sync_channels(self) -> int:
        """
        Rebuild the channel directory from the gateway cache.

        Returns:
            Number of text channels known after the sync
        """
        channels = collect_text_channels(self.guilds)
        await self.store.replace_channels(channels)
        self.logger.info("Channel directory synced",
                         guild_count=len(self.guilds),
                         channel_count=len(channels))
        return len(channels)

    async def send_announcement(
        self,
        channel_id: str,
        content: str,
        author_id: Optional[str] = None,
        author_tag: str = "System",
    ) -> AnnouncementResult:
        """Post an announcement through the dispatcher."""
        return await self.dispatcher.send(channel_id, content, author_id, author_tag)

    def primary_guild(self) -> Optional[discord.Guild]:
        """The guild the panel's guild-level operations act on."""
        return self.guilds[0] if self.guilds else None

    async def on_ready(self) -> None:
        """Called when the bot is ready and connected to Discord."""
        log_discord_event(
            "bot_ready",
            bot_user=str(self.user),
            bot_id=self.user.id if self.user else None,
            guild_count=len(self.guilds),
        )

        for guild in self.guilds:
            self.logger.info("Collecting channels", guild_id=guild.id, guild_name=guild.name)
        await self.sync_channels()

        try:
            await self.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(
                    type=discord.ActivityType.watching,
                    name="announcements 📢"
                )
            )
        except Exception as e:
            self.logger.warning("Failed to set bot status", error=str(e))

    async def close(self) -> None:
        """Close the Discord connection."""
        self.logger.info("Shutting down Discord bot")
        try:
            await super().close()
        finally:
            self.logger.info("Discord bot shutdown complete")
