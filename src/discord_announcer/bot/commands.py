"""
Text commands for the announcement bot.

``!ping`` and ``!status`` only see message text when the privileged
message content intent is enabled (``DISCORD_MESSAGE_CONTENT_INTENT``).
"""

import discord
from discord.ext import commands

from discord_announcer.bot.dispatcher import EMBED_COLOR
from discord_announcer.utils.logging import get_logger


class StatusCommands(commands.Cog):
    """Health commands usable from any channel the bot can read."""

    def __init__(self, bot) -> None:
        self.bot = bot
        self.logger = get_logger(__name__)

    @commands.command(name="ping")
    async def ping(self, ctx: commands.Context) -> None:
        """Reply with a liveness message."""
        await ctx.reply("🏓 Pong! Bot is working!")

    @commands.command(name="status")
    async def status(self, ctx: commands.Context) -> None:
        """Reply with an embed summarising the bot state."""
        embed = build_status_embed(self.bot)
        await ctx.reply(embed=embed)


def build_status_embed(bot) -> discord.Embed:
    """Status summary: connection, channel count, announcement count, guild count."""
    stats = bot.store.stats
    embed = discord.Embed(
        title="📊 Bot Status",
        color=EMBED_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="🔧 Status", value="Online", inline=True)
    embed.add_field(name="📺 Channels", value=str(len(bot.store.channels)), inline=True)
    embed.add_field(name="📢 Announcements", value=str(stats.total_announcements), inline=True)
    embed.add_field(name="🏛️ Servers", value=str(len(bot.guilds)), inline=True)
    return embed


async def setup_commands(bot) -> None:
    """
    Register the command cogs.

    Args:
        bot: The Discord bot instance
    """
    logger = get_logger(__name__)
    await bot.add_cog(StatusCommands(bot))
    logger.info("Commands loaded")
