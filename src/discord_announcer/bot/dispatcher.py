"""
Announcement dispatcher.

Validates the target channel, posts the announcement as an embed and
records it in the history. Failures are reported as a result object so
the caller can map them to a response; they never touch the history or
the stats.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

import discord

from discord_announcer.storage.models import Announcement
from discord_announcer.storage.store import DataStore
from discord_announcer.utils.exceptions import StorageError
from discord_announcer.utils.logging import (
    get_logger,
    log_error,
    log_operation_timing,
)

if TYPE_CHECKING:
    from discord_announcer.bot.client import AnnouncementBot

EMBED_TITLE = "📢 Announcement"
EMBED_COLOR = discord.Color(0x5865F2)
FOOTER_PREFIX = "Announcement System"


@dataclass
class AnnouncementResult:
    """Outcome of a send attempt. ``status`` is the HTTP status for failures."""

    success: bool
    error: Optional[str] = None
    status: int = 200
    announcement: Optional[Announcement] = None

    @classmethod
    def failure(cls, error: str, status: int) -> "AnnouncementResult":
        return cls(success=False, error=error, status=status)


def build_announcement_embed(
    content: str,
    author_tag: str,
    icon_url: Optional[str] = None,
) -> discord.Embed:
    """Build the rich message posted for an announcement."""
    embed = discord.Embed(
        title=EMBED_TITLE,
        description=content,
        color=EMBED_COLOR,
        timestamp=datetime.now(timezone.utc),
    )
    embed.set_footer(text=f"{FOOTER_PREFIX} • By {author_tag}", icon_url=icon_url)
    return embed


class AnnouncementDispatcher:
    """
    Sends announcements to Discord text channels.

    Attributes:
        bot: The connected Discord client (channel cache and identity)
        store: Where sent announcements are recorded
    """

    def __init__(self, bot: "AnnouncementBot", store: DataStore) -> None:
        self.bot = bot
        self.store = store
        self.logger = get_logger(__name__)

    def _resolve_channel(self, channel_id: str):
        try:
            return self.bot.get_channel(int(channel_id))
        except (TypeError, ValueError):
            return None

    async def send(
        self,
        channel_id: str,
        content: str,
        author_id: Optional[str] = None,
        author_tag: str = "System",
    ) -> AnnouncementResult:
        """
        Validate the channel, post the announcement and record it.

        Args:
            channel_id: Target channel id
            content: Announcement body
            author_id: Identity of the sender
            author_tag: Display name for the embed footer

        Returns:
            AnnouncementResult describing the outcome
        """
        channel = self._resolve_channel(channel_id)
        if channel is None:
            return AnnouncementResult.failure("Channel not found", 404)

        if getattr(channel, "type", None) != discord.ChannelType.text:
            return AnnouncementResult.failure("Channel must be a text channel", 400)

        permissions = channel.permissions_for(channel.guild.me)
        if not (permissions.send_messages and permissions.embed_links):
            return AnnouncementResult.failure(
                "Bot lacks the required permissions in this channel", 400
            )

        icon_url = self.bot.user.display_avatar.url if self.bot.user else None
        embed = build_announcement_embed(content, author_tag, icon_url)

        try:
            with log_operation_timing("send_announcement", channel_id=channel.id):
                await channel.send(embed=embed)
        except discord.DiscordException as e:
            log_error(e, {"channel_id": channel.id, "operation": "send_announcement"})
            return AnnouncementResult.failure(str(e) or "Failed to send announcement", 500)

        announcement = Announcement(
            channel_id=str(channel.id),
            channel_name=channel.name,
            guild_name=channel.guild.name,
            content=content,
            author_id=author_id,
            author_tag=author_tag,
        )
        try:
            announcement = await self.store.record_announcement(announcement)
        except StorageError as e:
            # The message is already posted
            log_error(e, {"channel_id": channel.id, "operation": "record_announcement"})

        self.logger.info("Announcement sent",
                         channel=channel.name,
                         guild=channel.guild.name,
                         author_tag=author_tag,
                         announcement_id=announcement.id)
        return AnnouncementResult(success=True, announcement=announcement)
