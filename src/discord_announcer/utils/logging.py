"""
Logging configuration and utilities for the Discord Announcer.

This module provides centralized logging setup with support for both
structured JSON logging (for production) and human-readable text logging
(for development). It integrates with structlog for structured logging
and rich for console output.

Helpers:
- Service-specific loggers (discord, api, storage, keepalive)
- Operation timing with correlation IDs
- HTTP response logging for the keep-alive pinger
- Storage operation logging
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

from discord_announcer.config import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up application logging based on configuration.

    Configures either JSON structured logging for production or rich
    text logging for development, for both the standard library and
    structlog.

    Args:
        config: Logging configuration settings

    Example:
        ```python
        from discord_announcer.config import load_config
        from discord_announcer.utils.logging import setup_logging

        app_config = load_config()
        setup_logging(app_config.logging)
        ```
    """
    # Clear any existing handlers
    logging.getLogger().handlers.clear()
    logging.getLogger().setLevel(config.level)

    if config.format == "json":
        _setup_json_logging(config)
    else:
        _setup_rich_logging(config)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                parameters=[structlog.processors.CallsiteParameter.FILENAME,
                            structlog.processors.CallsiteParameter.LINENO]
            ),
            _structlog_processor if config.format == "json" else _rich_processor,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.level)
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    configure_external_loggers()


def _setup_json_logging(config: LoggingConfig) -> None:
    """Set up structured JSON logging for production."""
    formatter = logging.Formatter(
        fmt='{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}',
        datefmt="%Y-%m-%dT%H:%M:%SZ"
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(config.level)

    logging.getLogger().addHandler(handler)


def _setup_rich_logging(config: LoggingConfig) -> None:
    """Set up rich text logging for development."""
    console = Console(force_terminal=True, width=120)

    handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=True,
        markup=True,
        rich_tracebacks=True,
    )

    handler.setLevel(config.level)
    logging.getLogger().addHandler(handler)


def _structlog_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    """Process structlog events for JSON output."""
    return json.dumps(event_dict, default=str)


def _rich_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    """Process structlog events for rich text output."""
    message = event_dict.pop("event", "")

    context_items = [
        f"{key}={value}"
        for key, value in event_dict.items()
        if key not in {"timestamp", "level", "filename", "lineno"}
    ]
    if context_items:
        message += f" ({', '.join(context_items)})"

    return message


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name (defaults to calling module)

    Returns:
        Configured structlog BoundLogger instance

    Example:
        ```python
        logger = get_logger(__name__)
        logger.info("Announcement sent", channel_id="123", author_tag="Web Panel")
        ```
    """
    return structlog.get_logger(name)


def get_service_logger(service_name: str) -> structlog.BoundLogger:
    """
    Get a service-specific logger with consistent naming.

    Args:
        service_name: Name of the service (e.g., 'discord', 'api', 'storage')

    Returns:
        Logger bound with service context
    """
    logger = get_logger(f"service.{service_name}")
    return logger.bind(service=service_name)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error with context information.

    Automatically includes exception type and message.

    Args:
        error: The exception that occurred
        context: Additional context information

    Example:
        ```python
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as e:
            log_error(e, {"channel_id": channel.id, "operation": "send_announcement"})
            raise
        ```
    """
    logger = get_logger()
    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(context)

    logger.error("Exception occurred", **error_context)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for tracking requests."""
    return str(uuid.uuid4())[:8]


def log_http_response(
    status_code: int,
    response_time_ms: float,
    error: Optional[str] = None,
    service: str = "unknown",
    correlation_id: Optional[str] = None
) -> None:
    """
    Log HTTP response details.

    Args:
        status_code: HTTP status code (0 when no response arrived)
        response_time_ms: Response time in milliseconds
        error: Error message if request failed
        service: Service name (keepalive, api, ...)
        correlation_id: Optional correlation ID for request tracking
    """
    logger = get_service_logger(service)

    log_level = "info"
    if error or status_code >= 400:
        log_level = "error" if error or status_code >= 500 else "warning"

    log_data = {
        "status_code": status_code,
        "response_time_ms": round(response_time_ms, 2),
        "correlation_id": correlation_id or "none"
    }

    if error:
        log_data["error"] = error

    message = "HTTP request failed" if error else "HTTP response received"
    getattr(logger, log_level)(message, **log_data)


@contextmanager
def log_operation_timing(operation_name: str, **context):
    """
    Context manager to log operation timing.

    Args:
        operation_name: Name of the operation being timed
        **context: Additional context to include in logs
    """
    logger = get_logger()
    correlation_id = context.pop('correlation_id', generate_correlation_id())

    start_time = time.time()
    logger.debug(
        f"Starting {operation_name}",
        operation=operation_name,
        correlation_id=correlation_id,
        **context
    )

    try:
        yield correlation_id
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Completed {operation_name}",
            operation=operation_name,
            duration_ms=round(duration_ms, 2),
            correlation_id=correlation_id,
            status="success",
            **context
        )
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"Failed {operation_name}",
            operation=operation_name,
            duration_ms=round(duration_ms, 2),
            correlation_id=correlation_id,
            status="error",
            error_type=type(e).__name__,
            error_message=str(e),
            **context
        )
        raise


def log_discord_event(event_type: str, **context):
    """
    Log Discord events with consistent formatting.

    Args:
        event_type: Type of Discord event (ready, guild_join, channel_create, ...)
        **context: Event-specific context
    """
    logger = get_service_logger("discord")
    logger.info(
        f"Discord event: {event_type}",
        event_type=event_type,
        **context
    )


def log_storage_operation(
    operation: str,
    path: str,
    duration_ms: Optional[float] = None,
    size_bytes: Optional[int] = None,
    **context
):
    """
    Log JSON store reads and writes.

    Args:
        operation: Store operation (load, save, recover)
        path: Document path
        duration_ms: Operation duration in milliseconds
        size_bytes: Size of the serialized document
        **context: Additional context
    """
    logger = get_service_logger("storage")

    log_data = {
        "operation": operation,
        "path": path,
        **context
    }

    if duration_ms is not None:
        log_data["duration_ms"] = round(duration_ms, 2)
    if size_bytes is not None:
        log_data["size_bytes"] = size_bytes

    logger.debug("Storage operation", **log_data)


def configure_external_loggers():
    """
    Configure logging levels for external libraries to reduce noise.
    """
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)
    logging.getLogger('discord.gateway').setLevel(logging.INFO)

    # aiohttp access log is replaced by the request logging middleware
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.server').setLevel(logging.WARNING)
