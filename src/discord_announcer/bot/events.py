"""
Discord event handlers for the announcement bot.

This module keeps the channel directory in step with the guild topology
and logs errors raised inside event handlers and commands.
"""

import sys
from typing import Any

import discord
from discord.ext import commands

from discord_announcer.utils.logging import (
    get_logger,
    log_error,
    log_discord_event,
)


async def setup_events(bot) -> None:
    """
    Set up event handlers for the bot.

    Args:
        bot: The Discord bot instance
    """
    logger = get_logger(__name__)
    logger.debug("Setting up event handlers")

    @bot.event
    async def on_guild_join(guild: discord.Guild) -> None:
        """Resync channels after joining a guild."""
        log_discord_event("guild_join", guild_id=guild.id, guild_name=guild.name)
        await bot.sync_channels()

    @bot.event
    async def on_guild_remove(guild: discord.Guild) -> None:
        """Resync channels after leaving a guild."""
        log_discord_event("guild_remove", guild_id=guild.id, guild_name=guild.name)
        await bot.sync_channels()

    @bot.event
    async def on_guild_channel_create(channel: discord.abc.GuildChannel) -> None:
        """Resync channels when a text channel appears."""
        if channel.type != discord.ChannelType.text:
            return
        log_discord_event("channel_create", channel_id=channel.id, channel_name=channel.name)
        await bot.sync_channels()

    @bot.event
    async def on_guild_channel_delete(channel: discord.abc.GuildChannel) -> None:
        """Resync channels when a text channel goes away."""
        if channel.type != discord.ChannelType.text:
            return
        log_discord_event("channel_delete", channel_id=channel.id, channel_name=channel.name)
        await bot.sync_channels()

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError) -> None:
        """
        Handle command errors.

        Args:
            ctx: Command context
            error: The error that occurred
        """
        if isinstance(error, commands.CommandNotFound):
            return

        log_error(error, {
            "command": ctx.command.name if ctx.command else "unknown",
            "user_id": ctx.author.id,
            "channel_id": ctx.channel.id,
            "guild_id": ctx.guild.id if ctx.guild else None,
        })

        try:
            await ctx.send("❌ An unexpected error occurred while processing your command.")
        except discord.HTTPException as e:
            logger.warning("Failed to send command error reply", error=str(e))

    @bot.event
    async def on_error(event: str, *args: Any, **kwargs: Any) -> None:
        """
        Handle general bot errors.

        Errors are logged and swallowed so the gateway connection stays up.

        Args:
            event: The event that caused the error
            *args: Event arguments
            **kwargs: Event keyword arguments
        """
        exc_type, exc_value, exc_traceback = sys.exc_info()

        if exc_value:
            log_error(exc_value, {
                "event": event,
                "args": str(args)[:500],
                "kwargs": str(kwargs)[:500],
            })
        else:
            logger.error("Unknown error in event", event=event)

    logger.info("Event handlers setup complete")
