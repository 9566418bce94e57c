"""
Channel directory helpers.

Builds the list of known text channels from the gateway cache and exposes
the guild structure (roles, categories) the admin panel needs, plus
channel creation.
"""

from typing import Any, Dict, Iterable, List, Optional

import discord

from discord_announcer.storage.models import Channel, NO_CATEGORY
from discord_announcer.utils.exceptions import (
    DiscordAPIError,
    InvalidRequestError,
    NotFoundError,
)
from discord_announcer.utils.logging import get_logger


def collect_text_channels(guilds: Iterable[discord.Guild]) -> List[Channel]:
    """
    Collect every guild text channel from the gateway cache.

    Args:
        guilds: Guilds the bot is a member of

    Returns:
        One Channel entry per text channel, in cache order
    """
    channels: List[Channel] = []
    for guild in guilds:
        for channel in guild.channels:
            if channel.type != discord.ChannelType.text:
                continue
            channels.append(Channel(
                id=str(channel.id),
                name=channel.name,
                guild=guild.name,
                guild_id=str(guild.id),
                category=channel.category.name if channel.category else NO_CATEGORY,
            ))
    return channels


def list_roles(guild: discord.Guild) -> List[Dict[str, Any]]:
    """All roles of a guild except @everyone."""
    return [
        {
            "id": str(role.id),
            "name": role.name,
            "color": role.color.value,
            "hoist": role.hoist,
        }
        for role in guild.roles
        if not role.is_default()
    ]


def list_categories(guild: discord.Guild) -> List[Dict[str, Any]]:
    """Category channels of a guild."""
    return [
        {
            "id": str(category.id),
            "name": category.name,
            "position": category.position,
        }
        for category in guild.categories
    ]


async def create_channel(
    guild: discord.Guild,
    name: str,
    category_id: Optional[str] = None,
    kind: Optional[str] = None,
) -> discord.abc.GuildChannel:
    """
    Create a text channel, or a voice channel when ``kind`` is "voice".

    Args:
        guild: Guild to create the channel in
        name: Channel name
        category_id: Optional parent category id
        kind: "voice" for a voice channel, anything else for text

    Returns:
        The created channel

    Raises:
        InvalidRequestError: If the category id is malformed
        NotFoundError: If the category does not exist in this guild
        DiscordAPIError: If Discord rejects the request
    """
    logger = get_logger(__name__)

    category = None
    if category_id:
        try:
            category = guild.get_channel(int(category_id))
        except (TypeError, ValueError):
            raise InvalidRequestError("Invalid category id", context={"category_id": category_id})
        if not isinstance(category, discord.CategoryChannel):
            raise NotFoundError("Category not found", context={"category_id": category_id})

    try:
        if kind == "voice":
            channel = await guild.create_voice_channel(name, category=category)
        else:
            channel = await guild.create_text_channel(name, category=category)
    except discord.HTTPException as e:
        raise DiscordAPIError(
            "Failed to create channel",
            context={"guild_id": guild.id, "name": name},
            original_error=e,
        )

    logger.info("Channel created",
                guild_id=guild.id,
                channel_id=channel.id,
                name=name,
                kind=kind or "text")
    return channel
