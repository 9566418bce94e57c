"""Utility modules for the Discord Announcer."""

from discord_announcer.utils.exceptions import (
    AnnouncerError,
    ConfigurationError,
    StorageError,
    DiscordAPIError,
    AuthError,
    InvalidRequestError,
    NotFoundError,
    RateLimitError,
    BotUnavailableError,
)
from discord_announcer.utils.logging import setup_logging

__all__ = [
    "AnnouncerError",
    "ConfigurationError",
    "StorageError",
    "DiscordAPIError",
    "AuthError",
    "InvalidRequestError",
    "NotFoundError",
    "RateLimitError",
    "BotUnavailableError",
    "setup_logging",
]
