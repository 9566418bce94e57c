"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from discord_announcer.config import (
    AppConfig,
    AuthConfig,
    DiscordConfig,
    LoggingConfig,
    StorageConfig,
    WebConfig,
)


def test_defaults(monkeypatch):
    for name in ("WEB_PORT", "PORT", "AUTH_ADMIN_PASSWORD", "ADMIN_PASSWORD", "STORAGE_PATH"):
        monkeypatch.delenv(name, raising=False)

    assert WebConfig().port == 3001
    assert AuthConfig().admin_password == "admin123"
    assert AuthConfig().token_ttl_hours == 24
    assert StorageConfig().max_announcements == 100
    assert StorageConfig().flush_interval_seconds == 300


def test_legacy_variable_names_are_accepted(monkeypatch):
    for name in ("WEB_PORT", "AUTH_ADMIN_PASSWORD", "AUTH_JWT_SECRET", "ENVIRONMENT", "WEB_KEEPALIVE_HOSTNAME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ADMIN_PASSWORD", "from-env")
    monkeypatch.setenv("JWT_SECRET", "env-secret")
    monkeypatch.setenv("NODE_ENV", "production")
    monkeypatch.setenv("RENDER_EXTERNAL_HOSTNAME", "announcer.onrender.com")

    config = AppConfig()

    assert config.web.port == 8080
    assert config.auth.admin_password == "from-env"
    assert config.auth.jwt_secret == "env-secret"
    assert config.is_production
    assert config.web.keepalive_hostname == "announcer.onrender.com"


def test_prefixed_names(monkeypatch):
    monkeypatch.setenv("WEB_PORT", "9000")
    monkeypatch.setenv("STORAGE_PATH", "/var/lib/announcer/data.json")
    monkeypatch.setenv("DISCORD_MESSAGE_CONTENT_INTENT", "true")

    assert WebConfig().port == 9000
    assert str(StorageConfig().path) == "/var/lib/announcer/data.json"
    assert DiscordConfig().message_content_intent is True


def test_empty_token_means_panel_only(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "")
    assert DiscordConfig().token is None


def test_short_token_rejected():
    with pytest.raises(ValidationError):
        DiscordConfig(token="too-short")


def test_log_level_normalized_and_validated():
    assert LoggingConfig(level="debug").level == "DEBUG"
    with pytest.raises(ValidationError):
        LoggingConfig(level="LOUD")
    with pytest.raises(ValidationError):
        LoggingConfig(format="xml")
