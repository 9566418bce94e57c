"""
Custom exceptions for the Discord Announcer.

This module defines a hierarchy of custom exceptions that provide clear
error handling and debugging information throughout the application.
All exceptions inherit from a base AnnouncerError class for easy
catching and handling.

Each exception carries the HTTP status the admin API answers with when
the error reaches a request handler boundary.
"""

from typing import Optional, Any, Dict


class AnnouncerError(Exception):
    """
    Base exception class for all Discord Announcer errors.

    This is the root exception that all other custom exceptions inherit from.
    It provides a consistent interface and allows catching all
    application errors with a single except clause.

    Attributes:
        message: Human-readable error message
        context: Additional context information about the error
        original_error: The original exception that caused this error (if any)
        status: HTTP status code used by the admin API
    """

    status: int = 500

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        status: Optional[int] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            context: Additional context information
            original_error: The original exception that caused this error
            status: Overrides the class-level HTTP status
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error
        if status is not None:
            self.status = status

    def __str__(self) -> str:
        """Return string representation of the error."""
        error_str = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            error_str += f" (Context: {context_str})"
        if self.original_error:
            error_str += f" (Caused by: {self.original_error})"
        return error_str


class ConfigurationError(AnnouncerError):
    """
    Raised when there's an error in configuration.

    This exception is raised when:
    - Configuration values are invalid
    - Configuration files cannot be loaded
    - Components cannot be assembled from the configuration
    """
    pass


class StorageError(AnnouncerError):
    """
    Raised when the JSON document cannot be read or written.

    Example:
        ```python
        try:
            path.write_text(payload)
        except OSError as e:
            raise StorageError(
                "Failed to save bot data",
                context={"path": str(path)},
                original_error=e
            )
        ```
    """
    pass


class DiscordAPIError(AnnouncerError):
    """
    Raised when there's an error with Discord API operations.

    This exception is raised when:
    - Discord API rate limits are hit
    - Bot permissions are insufficient
    - Discord API returns unexpected errors
    - Channel creation fails
    """
    pass


class AuthError(AnnouncerError):
    """
    Raised when a request is not authenticated.

    401 when no bearer token was presented, 403 when the token
    was rejected (bad signature or expired, deliberately not told apart).
    """

    status = 401


class InvalidRequestError(AnnouncerError):
    """Raised when request input fails validation."""

    status = 400


class NotFoundError(AnnouncerError):
    """Raised when a requested resource does not exist."""

    status = 404


class RateLimitError(AnnouncerError):
    """Raised when a client exceeds the per-IP request cap."""

    status = 429


class BotUnavailableError(AnnouncerError):
    """Raised when an operation needs the Discord connection and the bot is offline."""

    status = 503
