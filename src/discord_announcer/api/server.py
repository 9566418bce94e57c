"""
Admin API server for the web panel.

This module provides the HTTP API the administration panel talks to:
login, channel and announcement listings, template management, sending
announcements and guild utilities. It runs on the same event loop as the
Discord client and keeps serving while the bot is offline.
"""

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

import aiohttp_cors
import psutil
from aiohttp import web
from aiohttp.web import Request, Response

from discord_announcer import __version__
from discord_announcer.config import AppConfig
from discord_announcer.storage.models import utc_now_iso
from discord_announcer.storage.store import DataStore
from discord_announcer.api.auth import TokenAuthority
from discord_announcer.api.middleware import (
    RateLimiter,
    error_middleware,
    rate_limit_middleware,
    request_logging_middleware,
)
from discord_announcer.bot.channels import create_channel, list_categories, list_roles
from discord_announcer.utils.exceptions import (
    AuthError,
    BotUnavailableError,
    InvalidRequestError,
    NotFoundError,
)
from discord_announcer.utils.logging import get_logger

if TYPE_CHECKING:
    from discord_announcer.bot.client import AnnouncementBot

MAX_ANNOUNCEMENT_LENGTH = 2000
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
PANEL_AUTHOR_ID = "web-panel"
PANEL_AUTHOR_TAG = "Web Panel"


def _positive_int(value: Optional[str], default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


class AdminAPIServer:
    """
    HTTP API for the administration panel.

    Unauthenticated: ``/``, ``/api/health``, ``/api/login``.
    Every other route requires a bearer token issued by ``/api/login``.

    Attributes:
        config: Application configuration
        store: Shared data store
        bot: Discord client, or None in panel-only mode
        authority: Password check and session tokens
    """

    def __init__(
        self,
        config: AppConfig,
        store: DataStore,
        bot: Optional["AnnouncementBot"] = None,
        authority: Optional[TokenAuthority] = None,
    ) -> None:
        """
        Initialize the API server.

        Args:
            config: Application configuration
            store: Shared data store
            bot: Discord client (None when no token is configured)
            authority: Token authority, built from config when omitted
        """
        self.config = config
        self.store = store
        self.bot = bot
        self.authority = authority or TokenAuthority(config.auth)
        self.logger = get_logger(__name__)
        self._started_at = time.monotonic()
        self._process = psutil.Process()

        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    def create_app(self) -> web.Application:
        """Build the aiohttp application with routes, middleware and CORS."""
        limiter = RateLimiter(self.config.web.rate_limit_requests,
                              self.config.web.rate_limit_window_seconds)
        app = web.Application(
            middlewares=[
                request_logging_middleware,
                error_middleware,
                rate_limit_middleware(limiter),
            ],
            client_max_size=10 * 1024 * 1024,
        )

        app.router.add_get('/', self._index)
        app.router.add_get('/api/health', self._health)
        app.router.add_post('/api/login', self._login)
        app.router.add_get('/api/verify', self._verify)
        app.router.add_get('/api/channels', self._channels)
        app.router.add_get('/api/announcements', self._announcements)
        app.router.add_post('/api/announcement', self._send_announcement)
        app.router.add_get('/api/templates', self._templates)
        app.router.add_post('/api/template', self._create_template)
        app.router.add_put('/api/template/{id}', self._update_template)
        app.router.add_delete('/api/template/{id}', self._delete_template)
        app.router.add_post('/api/refresh-channels', self._refresh_channels)
        app.router.add_get('/api/stats', self._stats)
        app.router.add_get('/api/roles', self._roles)
        app.router.add_get('/api/categories', self._categories)
        app.router.add_post('/api/create-channel', self._create_channel)

        origin = self.config.web.panel_origin if self.config.is_production else "*"
        cors = aiohttp_cors.setup(app, defaults={
            origin: aiohttp_cors.ResourceOptions(
                allow_credentials=True,
                expose_headers="*",
                allow_headers="*",
                allow_methods="*",
            )
        })
        for route in list(app.router.routes()):
            cors.add(route)

        # Static resources cannot carry CORS config, so they come last
        static_dir = Path(self.config.web.static_dir)
        if static_dir.is_dir():
            app.router.add_static('/panel/', static_dir, show_index=False)

        return app

    async def start(self) -> None:
        """Start the API server."""
        self.app = self.create_app()
        self.runner = web.AppRunner(self.app, access_log=None)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.config.web.host, self.config.web.port)
        await self.site.start()

        self.logger.info("Admin API server started",
                         host=self.config.web.host,
                         port=self.config.web.port,
                         environment=self.config.environment)

    async def stop(self) -> None:
        """Stop the API server."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        self.logger.info("Admin API server stopped")

    # Helpers

    def _bot_online(self) -> bool:
        return self.bot is not None and self.bot.is_ready()

    def _bot_user(self) -> Optional[str]:
        if self.bot is not None and self.bot.user:
            return str(self.bot.user)
        return None

    def _guild_count(self) -> int:
        return len(self.bot.guilds) if self.bot is not None else 0

    def _uptime(self) -> float:
        return round(time.monotonic() - self._started_at, 3)

    def _memory_usage(self) -> Dict[str, int]:
        info = self._process.memory_info()
        return {'rss': info.rss, 'vms': info.vms}

    def _require_bot(self) -> "AnnouncementBot":
        if not self._bot_online():
            raise BotUnavailableError("Discord bot is not connected")
        return self.bot

    def _require_guild(self):
        guild = self._require_bot().primary_guild()
        if guild is None:
            raise NotFoundError("Server not found")
        return guild

    @staticmethod
    async def _read_json(request: Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise InvalidRequestError("Invalid JSON")
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        return body

    @staticmethod
    def _template_id(request: Request) -> int:
        try:
            return int(request.match_info['id'])
        except ValueError:
            raise NotFoundError("Template not found")

    # Public endpoints

    async def _index(self, request: Request) -> Response:
        """Public status summary."""
        return web.json_response({
            'status': 'online',
            'bot': self._bot_user() or 'connecting...',
            'botOnline': self._bot_online(),
            'uptime': self._uptime(),
            'guilds': self._guild_count(),
            'channels': len(self.store.channels),
            'timestamp': utc_now_iso(),
            'version': __version__,
        })

    async def _health(self, request: Request) -> Response:
        """Health check endpoint."""
        return web.json_response({
            'status': 'healthy',
            'bot_online': self._bot_online(),
            'bot_user': self._bot_user() or 'Connecting',
            'guilds': self._guild_count(),
            'channels': len(self.store.channels),
            'announcements_sent': self.store.stats.total_announcements,
            'uptime': self._uptime(),
            'environment': self.config.environment,
            'memory': self._memory_usage(),
        })

    async def _login(self, request: Request) -> Response:
        """Exchange the admin password for a session token."""
        body = await self._read_json(request)
        password = body.get('password')
        if not password or not isinstance(password, str):
            raise InvalidRequestError("Password is required")

        if not self.authority.check_password(password):
            self.logger.warning("Failed login attempt", client_ip=request.remote)
            raise AuthError("Incorrect password", status=401)

        token = self.authority.issue_token()
        self.logger.info("Login successful", client_ip=request.remote)
        return web.json_response({
            'success': True,
            'token': token,
            'message': 'Login successful!',
        })

    # Protected endpoints

    async def _verify(self, request: Request) -> Response:
        """Confirm a session token is still valid."""
        claims = self.authority.authenticate(request)
        return web.json_response({'authenticated': True, 'user': claims})

    async def _channels(self, request: Request) -> Response:
        """Known text channels, flat and grouped by guild name."""
        self.authority.authenticate(request)
        channels = [channel.to_dict() for channel in self.store.channels]

        grouped: Dict[str, list] = {}
        for channel in channels:
            grouped.setdefault(channel['guild'], []).append(channel)

        return web.json_response({
            'channels': channels,
            'channelsGrouped': grouped,
            'total': len(channels),
            'lastUpdate': utc_now_iso(),
        })

    async def _announcements(self, request: Request) -> Response:
        """One page of the announcement history, newest first."""
        self.authority.authenticate(request)
        page = _positive_int(request.query.get('page'), 1)
        limit = min(_positive_int(request.query.get('limit'), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)

        entries, pagination = self.store.list_announcements(page, limit)
        return web.json_response({
            'announcements': [entry.to_dict() for entry in entries],
            'pagination': pagination,
        })

    async def _send_announcement(self, request: Request) -> Response:
        """Post an announcement to a channel."""
        self.authority.authenticate(request)
        body = await self._read_json(request)
        channel_id = body.get('channelId')
        content = body.get('content')

        if not channel_id or not content or not isinstance(content, str):
            raise InvalidRequestError("Channel and content are required")
        if len(content) > MAX_ANNOUNCEMENT_LENGTH:
            raise InvalidRequestError(
                f"Message too long (maximum {MAX_ANNOUNCEMENT_LENGTH} characters)"
            )

        bot = self._require_bot()
        result = await bot.send_announcement(
            str(channel_id), content, PANEL_AUTHOR_ID, PANEL_AUTHOR_TAG
        )

        if not result.success:
            return web.json_response({'error': result.error}, status=result.status)
        return web.json_response({
            'success': True,
            'message': 'Announcement sent successfully!',
        })

    async def _templates(self, request: Request) -> Response:
        self.authority.authenticate(request)
        return web.json_response([t.to_dict() for t in self.store.list_templates()])

    async def _create_template(self, request: Request) -> Response:
        self.authority.authenticate(request)
        body = await self._read_json(request)
        template = await self.store.create_template(
            body.get('name'), body.get('content'), body.get('category')
        )
        return web.json_response({
            'success': True,
            'message': 'Template saved successfully!',
            'template': template.to_dict(),
        })

    async def _update_template(self, request: Request) -> Response:
        self.authority.authenticate(request)
        template_id = self._template_id(request)
        body = await self._read_json(request)
        template = await self.store.update_template(
            template_id, body.get('name'), body.get('content'), body.get('category')
        )
        return web.json_response({
            'success': True,
            'message': 'Template updated successfully!',
            'template': template.to_dict(),
        })

    async def _delete_template(self, request: Request) -> Response:
        self.authority.authenticate(request)
        await self.store.delete_template(self._template_id(request))
        return web.json_response({
            'success': True,
            'message': 'Template removed successfully!',
        })

    async def _refresh_channels(self, request: Request) -> Response:
        """Rebuild the channel directory from the gateway cache."""
        self.authority.authenticate(request)
        count = await self._require_bot().sync_channels()
        return web.json_response({
            'success': True,
            'message': 'Channels refreshed successfully!',
            'channels': count,
        })

    async def _stats(self, request: Request) -> Response:
        self.authority.authenticate(request)
        return web.json_response({
            **self.store.stats.to_dict(),
            'botOnline': self._bot_online(),
            'guilds': self._guild_count(),
            'channels': len(self.store.channels),
            'templates': len(self.store.list_templates()),
            'botUser': self._bot_user() or 'Offline',
            'uptime': self._uptime(),
            'memoryUsage': self._memory_usage(),
        })

    async def _roles(self, request: Request) -> Response:
        self.authority.authenticate(request)
        guild = self._require_guild()
        return web.json_response({'success': True, 'roles': list_roles(guild)})

    async def _categories(self, request: Request) -> Response:
        self.authority.authenticate(request)
        guild = self._require_guild()
        return web.json_response({'success': True, 'categories': list_categories(guild)})

    async def _create_channel(self, request: Request) -> Response:
        self.authority.authenticate(request)
        body = await self._read_json(request)
        name = body.get('name')
        if not name or not isinstance(name, str):
            raise InvalidRequestError("Channel name is required")

        guild = self._require_guild()
        channel = await create_channel(guild, name, body.get('categoryId'), body.get('type'))
        return web.json_response({'success': True, 'channelId': str(channel.id)})
