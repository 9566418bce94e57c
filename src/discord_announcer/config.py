"""
Configuration management for the Discord Announcer.

This module handles all configuration loading from environment variables,
validation, and provides typed configuration objects for use throughout
the application.

The configuration is loaded from environment variables and .env files,
with sensible defaults for development. The unprefixed variable names used
by older deployments (PORT, ADMIN_PASSWORD, JWT_SECRET, NODE_ENV,
RENDER_EXTERNAL_HOSTNAME) are accepted as aliases.
"""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiscordConfig(BaseSettings):
    """Discord bot configuration settings."""

    model_config = SettingsConfigDict(env_prefix="DISCORD_", populate_by_name=True)

    token: Optional[str] = Field(
        default=None,
        description="Discord bot token; without it only the web panel runs"
    )
    command_prefix: str = Field(
        default="!",
        description="Command prefix for text commands"
    )
    message_content_intent: bool = Field(
        default=False,
        description="Request the privileged message content intent (needed for text commands)"
    )

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: Optional[str]) -> Optional[str]:
        """Validate Discord token format."""
        if not v:
            return None
        if len(v) < 50:
            raise ValueError("Discord token must be a valid bot token")
        return v


class WebConfig(BaseSettings):
    """Admin panel web server settings."""

    model_config = SettingsConfigDict(env_prefix="WEB_", populate_by_name=True)

    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(
        default=3001,
        gt=0,
        lt=65536,
        validation_alias=AliasChoices("WEB_PORT", "PORT"),
        description="Port to listen on"
    )
    panel_origin: str = Field(
        default="https://anuncisoverceljojos.vercel.app",
        description="Allowed CORS origin in production"
    )
    static_dir: str = Field(
        default="public",
        description="Directory holding the panel's static files"
    )
    rate_limit_requests: int = Field(
        default=100,
        gt=0,
        description="Requests allowed per client IP per window"
    )
    rate_limit_window_seconds: int = Field(
        default=15 * 60,
        gt=0,
        description="Rate limit window length"
    )
    keepalive_hostname: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("WEB_KEEPALIVE_HOSTNAME", "RENDER_EXTERNAL_HOSTNAME"),
        description="Public hostname pinged to keep the service awake in production"
    )
    keepalive_interval_seconds: int = Field(
        default=14 * 60,
        gt=0,
        description="Self-ping period"
    )


class AuthConfig(BaseSettings):
    """Admin authentication settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_", populate_by_name=True)

    admin_password: str = Field(
        default="admin123",
        validation_alias=AliasChoices("AUTH_ADMIN_PASSWORD", "ADMIN_PASSWORD"),
        description="Shared admin password"
    )
    admin_password_hash: Optional[str] = Field(
        default=None,
        description="bcrypt hash of the admin password; preferred over the plaintext value"
    )
    jwt_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AUTH_JWT_SECRET", "JWT_SECRET"),
        description="HMAC key for session tokens; random per process when unset"
    )
    token_ttl_hours: int = Field(
        default=24,
        gt=0,
        description="Session token lifetime"
    )


class StorageConfig(BaseSettings):
    """JSON document store settings."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_", populate_by_name=True)

    path: Path = Field(
        default=Path("botData.json"),
        description="Location of the persisted document"
    )
    max_announcements: int = Field(
        default=100,
        gt=0,
        description="Announcement history bound"
    )
    flush_interval_seconds: float = Field(
        default=5 * 60,
        gt=0,
        description="Period of the unconditional background save"
    )


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_", populate_by_name=True)

    level: str = Field(
        default="INFO",
        description="Logging level"
    )
    format: str = Field(
        default="json",
        description="Log format: 'json' or 'text'"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
        description="Deployment environment name"
    )

    # Sub-configurations
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def load_config() -> AppConfig:
    """
    Load and validate application configuration.

    This function loads configuration from environment variables and .env files,
    validates all settings, and returns a fully configured AppConfig instance.

    Returns:
        AppConfig: Validated application configuration

    Raises:
        ValidationError: If configuration is invalid

    Example:
        ```python
        config = load_config()
        print(f"Panel will listen on port {config.web.port}")
        ```
    """
    # Sub-configs read os.environ only, so push .env values there first
    env_file = Path(".env")
    if env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(env_file)

    return AppConfig()
