"""
Request middleware for the admin API.

Provides:
- Per-request structured log entry with timing and client IP
- Mapping of application errors to JSON error responses
- A per-IP fixed-window request cap shared by all endpoints
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from aiohttp import web
from aiohttp.web import Request, StreamResponse

from discord_announcer.utils.exceptions import AnnouncerError, RateLimitError
from discord_announcer.utils.logging import (
    generate_correlation_id,
    get_service_logger,
    log_error,
)

Handler = Callable[[Request], Awaitable[StreamResponse]]


def client_ip(request: Request) -> str:
    return request.remote or "unknown"


@web.middleware
async def request_logging_middleware(request: Request, handler: Handler) -> StreamResponse:
    """Log every request with its status and duration."""
    logger = get_service_logger("api")
    request_id = request.headers.get("X-Request-ID", generate_correlation_id())
    start = time.perf_counter()
    status = 500

    try:
        response = await handler(request)
        status = response.status
        response.headers["X-Request-ID"] = request_id
        return response
    except web.HTTPException as e:
        status = e.status
        raise
    except asyncio.CancelledError:
        # Client went away before the response was ready
        status = 499
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        log = logger.warning if status >= 400 else logger.info
        log("HTTP request handled",
            method=request.method,
            path=request.path,
            status_code=status,
            duration_ms=round(duration_ms, 1),
            client_ip=client_ip(request),
            request_id=request_id)


@web.middleware
async def error_middleware(request: Request, handler: Handler) -> StreamResponse:
    """Turn exceptions raised by handlers into JSON error responses."""
    try:
        return await handler(request)
    except AnnouncerError as e:
        return web.json_response({"error": e.message}, status=e.status)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response({"error": e.reason}, status=e.status)
    except Exception as e:
        log_error(e, {"method": request.method, "path": request.path})
        return web.json_response({"error": "Internal server error"}, status=500)


class RateLimiter:
    """
    Fixed-window request counter keyed by client IP.

    Attributes:
        max_requests: Requests allowed per window
        window_seconds: Window length
    """

    def __init__(self, max_requests: int, window_seconds: float) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str, now: Optional[float] = None) -> bool:
        """
        Count one request for ``key``.

        Returns:
            False once the key is over its allowance for the current window
        """
        now = time.monotonic() if now is None else now
        self._prune(now)

        window_start, count = self._windows.get(key, (now, 0))
        if now - window_start >= self.window_seconds:
            window_start, count = now, 0
        count += 1
        self._windows[key] = (window_start, count)
        return count <= self.max_requests

    def _prune(self, now: float) -> None:
        expired = [key for key, (start, _) in self._windows.items()
                   if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]


def rate_limit_middleware(limiter: RateLimiter):
    """Build a middleware rejecting clients over the limiter's allowance."""

    @web.middleware
    async def middleware(request: Request, handler: Handler) -> StreamResponse:
        if not limiter.hit(client_ip(request)):
            minutes = max(1, round(limiter.window_seconds / 60))
            raise RateLimitError(f"Too many requests. Try again in {minutes} minutes.")
        return await handler(request)

    return middleware
