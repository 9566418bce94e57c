"""Test configuration and utilities."""

from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from aiohttp.test_utils import TestClient, TestServer

from discord_announcer.config import (
    AppConfig,
    AuthConfig,
    DiscordConfig,
    LoggingConfig,
    StorageConfig,
    WebConfig,
)
from discord_announcer.api.server import AdminAPIServer
from discord_announcer.bot.channels import collect_text_channels
from discord_announcer.bot.dispatcher import AnnouncementDispatcher
from discord_announcer.storage.store import DataStore

ADMIN_PASSWORD = "correct horse battery staple"


@pytest.fixture
def test_config(tmp_path) -> AppConfig:
    """Create a test configuration."""
    config = AppConfig()

    # Override with test-specific settings
    config.environment = "test"
    config.discord = DiscordConfig(token=None)
    config.web = WebConfig(
        port=3001,
        static_dir=str(tmp_path / "public"),
        rate_limit_requests=1000,
    )
    config.auth = AuthConfig(
        admin_password=ADMIN_PASSWORD,
        jwt_secret="test-signing-secret",
    )
    config.storage = StorageConfig(
        path=tmp_path / "botData.json",
        flush_interval_seconds=3600,
    )
    config.logging = LoggingConfig(level="DEBUG", format="text")

    return config


@pytest.fixture
async def store(test_config):
    """An initialized data store writing to a temp directory."""
    data_store = DataStore(test_config.storage)
    await data_store.initialize()
    yield data_store
    await data_store.close()


class FakeUser:
    """Stands in for the bot's ClientUser."""

    def __init__(self, tag: str = "Announcer#0001") -> None:
        self.tag = tag
        self.display_avatar = SimpleNamespace(url="https://cdn.example/avatar.png")

    def __str__(self) -> str:
        return self.tag


def make_text_channel(
    channel_id: int,
    name: str,
    guild,
    category: Optional[str] = None,
    send_messages: bool = True,
    embed_links: bool = True,
    channel_type: discord.ChannelType = discord.ChannelType.text,
):
    """A cached guild channel with controllable permissions."""
    channel = MagicMock()
    channel.id = channel_id
    channel.name = name
    channel.type = channel_type
    channel.guild = guild
    channel.category = SimpleNamespace(name=category) if category else None
    channel.permissions_for.return_value = SimpleNamespace(
        send_messages=send_messages, embed_links=embed_links
    )
    channel.send = AsyncMock()
    return channel


def make_guild(guild_id: int, name: str):
    guild = MagicMock()
    guild.id = guild_id
    guild.name = name
    guild.me = SimpleNamespace(id=999)
    guild.channels = []
    return guild


class FakeBot:
    """
    Minimal Discord client double exposing what the dispatcher and API use.
    """

    def __init__(self, store: DataStore, ready: bool = True) -> None:
        self.store = store
        self._ready = ready
        self.user = FakeUser()
        self.guilds: List = []
        self.dispatcher = AnnouncementDispatcher(self, store)

    def is_ready(self) -> bool:
        return self._ready

    def get_channel(self, channel_id: int):
        for guild in self.guilds:
            for channel in guild.channels:
                if channel.id == channel_id:
                    return channel
        return None

    def add_channel(self, guild, channel) -> None:
        if guild not in self.guilds:
            self.guilds.append(guild)
        guild.channels.append(channel)

    async def send_announcement(self, channel_id, content, author_id=None, author_tag="System"):
        return await self.dispatcher.send(channel_id, content, author_id, author_tag)

    async def sync_channels(self) -> int:
        channels = collect_text_channels(self.guilds)
        await self.store.replace_channels(channels)
        return len(channels)

    def primary_guild(self):
        return self.guilds[0] if self.guilds else None


@pytest.fixture
def fake_bot(store) -> FakeBot:
    """A ready bot with one guild holding one sendable text channel."""
    bot = FakeBot(store)
    guild = make_guild(1, "Test Server")
    bot.add_channel(guild, make_text_channel(100, "announcements", guild, category="Info"))
    return bot


@pytest.fixture
def api_server(test_config, store, fake_bot) -> AdminAPIServer:
    return AdminAPIServer(test_config, store, fake_bot)


@pytest.fixture
async def client(api_server):
    """aiohttp test client bound to the admin API."""
    async with TestClient(TestServer(api_server.create_app())) as test_client:
        yield test_client


@pytest.fixture
async def auth_headers(client):
    """Authorization header carrying a freshly issued session token."""
    response = await client.post("/api/login", json={"password": ADMIN_PASSWORD})
    body = await response.json()
    return {"Authorization": f"Bearer {body['token']}"}
