"""Persistence layer for the Discord Announcer."""

from discord_announcer.storage.models import (
    Announcement,
    BotData,
    Channel,
    Stats,
    Template,
)
from discord_announcer.storage.store import DataStore

__all__ = [
    "Announcement",
    "BotData",
    "Channel",
    "Stats",
    "Template",
    "DataStore",
]
