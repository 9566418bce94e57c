"""
Main entry point for the Discord Announcer.

This module wires the data store, the admin API server and the Discord
client together on one event loop. The web panel starts first and keeps
running when the Discord connection cannot be established.
"""

import asyncio
import signal
import sys
from typing import Any, Dict, Optional

import discord
from pydantic import ValidationError

from discord_announcer import __version__
from discord_announcer.config import load_config, AppConfig
from discord_announcer.storage.store import DataStore
from discord_announcer.api.server import AdminAPIServer
from discord_announcer.api.keepalive import KeepAlivePinger
from discord_announcer.utils.logging import setup_logging, get_logger
from discord_announcer.utils.exceptions import ConfigurationError, StorageError
from discord_announcer.bot.client import AnnouncementBot

INTENTS_HINT = (
    "Enable the privileged intents in the Discord Developer Portal "
    "(Applications > your app > Bot > Privileged Gateway Intents) or set "
    "DISCORD_MESSAGE_CONTENT_INTENT=false. The web panel keeps running."
)


def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Log exceptions nobody awaited; the process keeps running."""
    logger = get_logger(__name__)
    error = context.get("exception")
    logger.error("Unhandled exception in event loop",
                 message=context.get("message"),
                 error_type=type(error).__name__ if error else None,
                 error=str(error) if error else None)


async def run_bot(bot: AnnouncementBot, token: str) -> None:
    """
    Connect the bot and keep it running.

    Connection failures are logged and swallowed so the panel stays up.
    """
    logger = get_logger(__name__)
    logger.info("Starting Discord bot", token_prefix=token[:10] + "...")

    try:
        await bot.start(token)
        return
    except discord.PrivilegedIntentsRequired as e:
        logger.error("Discord rejected the requested intents", error=str(e), hint=INTENTS_HINT)
    except discord.LoginFailure as e:
        logger.error("Discord login failed, check DISCORD_TOKEN", error=str(e))
    except Exception as e:
        logger.error("Discord bot stopped with an error", error=str(e), error_type=type(e).__name__)

    logger.warning("Web server continues running for the admin panel")


async def run(config: AppConfig) -> None:
    """
    Run the service until a shutdown signal arrives.

    Args:
        config: Application configuration
    """
    logger = get_logger(__name__)
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_handle_loop_exception)

    shutdown_event = asyncio.Event()
    store = DataStore(config.storage)
    bot: Optional[AnnouncementBot] = None
    server: Optional[AdminAPIServer] = None
    pinger: Optional[KeepAlivePinger] = None
    bot_task: Optional[asyncio.Task] = None

    def request_shutdown(signum: int) -> None:
        logger.info("Received shutdown signal", signal=signum)
        shutdown_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, request_shutdown, signum)
        except NotImplementedError:
            signal.signal(signum, lambda s, frame: loop.call_soon_threadsafe(request_shutdown, s))

    try:
        await store.initialize()

        if config.discord.token:
            bot = AnnouncementBot(config, store)
        else:
            logger.error("DISCORD_TOKEN is not configured; running the web panel without the bot")

        server = AdminAPIServer(config, store, bot)
        await server.start()

        if config.auth.admin_password == "admin123" and not config.auth.admin_password_hash:
            logger.warning("Using the default admin password; set AUTH_ADMIN_PASSWORD")

        if config.is_production and config.web.keepalive_hostname:
            pinger = KeepAlivePinger(config.web.keepalive_hostname,
                                     config.web.keepalive_interval_seconds)
            pinger.start()

        if config.is_production:
            logger.info("Admin panel ready", port=config.web.port)
        else:
            logger.info("Admin panel ready",
                        panel_url=f"http://localhost:{config.web.port}/panel/",
                        health_url=f"http://localhost:{config.web.port}/api/health")

        if bot:
            bot_task = asyncio.create_task(run_bot(bot, config.discord.token))

        await shutdown_event.wait()

    finally:
        logger.info("Shutting down")
        if bot_task and not bot_task.done():
            bot_task.cancel()
            try:
                await bot_task
            except asyncio.CancelledError:
                pass
        if bot:
            try:
                await asyncio.wait_for(bot.close(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Bot shutdown timed out after 5 seconds, forcing close")
            except Exception as e:
                logger.error("Error during bot shutdown", error=str(e))
        if pinger:
            await pinger.stop()
        if server:
            await server.stop()
        try:
            await store.close()
        except StorageError as e:
            logger.error("Final save failed", error=str(e))


async def main_async() -> None:
    """
    Async main function that handles the complete service lifecycle.

    This function:
    1. Loads configuration
    2. Sets up logging
    3. Runs the store, web server and bot
    4. Handles shutdown gracefully
    """
    try:
        config = load_config()
    except ValidationError as e:
        raise ConfigurationError("Invalid configuration", original_error=e)

    setup_logging(config.logging)
    logger = get_logger(__name__)
    logger.info("Discord Announcer starting up",
                version=__version__,
                environment=config.environment)

    await run(config)
    logger.info("Discord Announcer shutdown complete")


def main() -> None:
    """
    Main entry point for the Discord Announcer.

    Example:
        Command line usage:
        ```bash
        discord-announcer
        ```
    """
    try:
        asyncio.run(main_async())
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nShutdown requested", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error during startup: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
