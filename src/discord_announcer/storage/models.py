"""
Data models for the persisted bot document.

This module defines Pydantic models for everything kept in the JSON
document: the announcement history, the channel directory, message
templates and usage statistics. Fields use snake_case in Python and
camelCase in the document and in API responses.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer
from pydantic.alias_generators import to_camel

NO_CATEGORY = "No category"
DEFAULT_TEMPLATE_CATEGORY = "General"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_ms() -> int:
    """Current Unix time in milliseconds, used as entry ids."""
    return int(time.time() * 1000)


class DocumentModel(BaseModel):
    """Base for document entries: camelCase aliases, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the document / API representation."""
        return self.model_dump(by_alias=True)


class Announcement(DocumentModel):
    """
    A sent announcement kept in the bounded history.

    Attributes:
        id: Creation time in milliseconds
        channel_id: Target Discord channel id
        channel_name: Channel name at send time
        guild_name: Guild name at send time
        content: Announcement body
        author_id: Identity of the sender (e.g. "web-panel")
        author_tag: Display name shown in the embed footer
        timestamp: Send time (ISO-8601)
    """

    id: int = Field(default_factory=timestamp_ms)
    channel_id: str
    channel_name: str
    guild_name: str
    content: str
    author_id: Optional[str] = None
    author_tag: str = "System"
    timestamp: str = Field(default_factory=utc_now_iso)


class Channel(DocumentModel):
    """A guild text channel known to the bot."""

    id: str
    name: str
    guild: str = Field(description="Parent guild name")
    guild_id: str
    category: str = NO_CATEGORY


class Template(DocumentModel):
    """
    A reusable announcement body.

    ``usage_count`` is carried for compatibility with existing documents;
    nothing increments it.
    """

    id: int = Field(default_factory=timestamp_ms)
    name: str
    content: str
    category: str = DEFAULT_TEMPLATE_CATEGORY
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: Optional[str] = None
    usage_count: int = 0

    @model_serializer(mode="wrap")
    def _omit_missing_update(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        # Never-edited templates carry no updatedAt key
        data = handler(self)
        if self.updated_at is None:
            data.pop("updatedAt", None)
            data.pop("updated_at", None)
        return data


class Stats(DocumentModel):
    """Aggregate usage statistics."""

    total_announcements: int = 0
    last_activity: str = Field(default_factory=utc_now_iso)


class BotData(DocumentModel):
    """The whole persisted document."""

    announcements: List[Announcement] = Field(default_factory=list)
    channels: List[Channel] = Field(default_factory=list)
    templates: List[Template] = Field(default_factory=list)
    stats: Stats = Field(default_factory=Stats)
