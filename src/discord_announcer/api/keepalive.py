"""
Keep-alive pinger.

Hosting platforms that idle services without traffic (Render free tier)
are kept awake by requesting our own public health endpoint on a timer.
Only started in production when a public hostname is configured.
"""

import asyncio
import time
from typing import Optional

import aiohttp

from discord_announcer.utils.logging import (
    generate_correlation_id,
    get_logger,
    log_http_response,
)


class KeepAlivePinger:
    """
    Periodically GETs ``https://<hostname>/api/health``.

    Attributes:
        url: Health endpoint being pinged
        interval: Seconds between pings
    """

    def __init__(self, hostname: str, interval: float, timeout: float = 30.0) -> None:
        self.url = f"https://{hostname}/api/health"
        self.interval = interval
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None
        self._task: Optional[asyncio.Task] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self.session

    async def ping(self) -> int:
        """
        Request the health endpoint once.

        Returns:
            HTTP status, or 0 when the request failed
        """
        session = await self._ensure_session()
        correlation_id = generate_correlation_id()
        start_time = time.time()
        try:
            async with session.get(self.url) as response:
                log_http_response(
                    response.status,
                    (time.time() - start_time) * 1000,
                    service="keepalive",
                    correlation_id=correlation_id,
                )
                return response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log_http_response(
                0,
                (time.time() - start_time) * 1000,
                error=str(e) or type(e).__name__,
                service="keepalive",
                correlation_id=correlation_id,
            )
            return 0

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.ping()

    def start(self) -> None:
        """Start pinging in the background."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            self.logger.info("Keep-alive pinger started", url=self.url, interval=self.interval)

    async def stop(self) -> None:
        """Stop pinging and close the HTTP session."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self.session and not self.session.closed:
            await self.session.close()
