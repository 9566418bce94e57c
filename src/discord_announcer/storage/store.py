"""
JSON document store for the Discord Announcer.

This module keeps the whole bot state (announcement history, channel
directory, templates, stats) in memory and persists it as a single JSON
document. Writes go to a temporary file in the same directory which is
then renamed over the target, so a crash mid-write leaves the previous
document intact. Every read-modify-write sequence runs under one
asyncio lock.
"""

import asyncio
import json
import math
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from discord_announcer.config import StorageConfig
from discord_announcer.utils.logging import get_logger, log_storage_operation
from discord_announcer.utils.exceptions import (
    InvalidRequestError,
    NotFoundError,
    StorageError,
)
from discord_announcer.storage.models import (
    Announcement,
    BotData,
    Channel,
    Stats,
    Template,
    DEFAULT_TEMPLATE_CATEGORY,
    timestamp_ms,
    utc_now_iso,
)


def _text_field(value: Any, field: str) -> Optional[str]:
    """Reject non-string request values before they reach the document."""
    if value is not None and not isinstance(value, str):
        raise InvalidRequestError(f"Field '{field}' must be a string", context={"field": field})
    return value


class DataStore:
    """
    In-memory bot state backed by a JSON document on disk.

    Attributes:
        config: Storage configuration
        path: Location of the document
        data: Current in-memory state
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize the store.

        Args:
            config: Storage configuration
        """
        self.config = config
        self.path = Path(config.path)
        self.logger = get_logger(__name__)
        self.data = BotData()
        self._lock = asyncio.Lock()
        self._flush_task: Optional[asyncio.Task] = None
        self._closed = False

    async def initialize(self) -> None:
        """
        Load the document and start the periodic flush.

        A missing document is created with defaults. A document that cannot
        be parsed is moved aside and replaced with defaults.

        Raises:
            StorageError: If the store has been closed or cannot be written
        """
        if self._closed:
            raise StorageError("Data store has been closed")

        await self.load()
        self._flush_task = asyncio.create_task(self._periodic_flush())
        self.logger.info("Data store initialized",
                         path=str(self.path),
                         announcements=len(self.data.announcements),
                         channels=len(self.data.channels),
                         templates=len(self.data.templates))

    async def load(self) -> None:
        """Read the document from disk, recovering from a missing or corrupt file."""
        async with self._lock:
            start_time = time.time()
            try:
                raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            except FileNotFoundError:
                self.logger.warning("Data file not found, creating a new one", path=str(self.path))
                self.data = BotData()
                await self._write_locked()
                return
            except OSError as e:
                raise StorageError(
                    "Failed to read bot data",
                    context={"path": str(self.path)},
                    original_error=e,
                )

            try:
                data = BotData.model_validate(json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                backup = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time())}")
                self.logger.error("Data file is corrupted, starting fresh",
                                  path=str(self.path), backup=str(backup), error=str(e))
                await asyncio.to_thread(os.replace, self.path, backup)
                log_storage_operation("recover", str(self.path), backup=str(backup))
                self.data = BotData()
                await self._write_locked()
                return

            excess = len(data.announcements) - self.config.max_announcements
            if excess > 0:
                del data.announcements[self.config.max_announcements:]
                self.logger.info("Trimmed announcement history on load",
                                 dropped=excess, kept=len(data.announcements))
            self.data = data

            log_storage_operation(
                "load",
                str(self.path),
                duration_ms=(time.time() - start_time) * 1000,
                size_bytes=len(raw),
            )

    async def save(self) -> None:
        """Persist the current state."""
        async with self._lock:
            await self._write_locked()

    async def _write_locked(self, data: Optional[BotData] = None) -> None:
        """Serialize and atomically write the document. Caller holds the lock."""
        start_time = time.time()
        document = (data if data is not None else self.data).to_dict()
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        try:
            await asyncio.to_thread(self._atomic_write, payload)
        except OSError as e:
            self.logger.error("Failed to save bot data", path=str(self.path), error=str(e))
            raise StorageError(
                "Failed to save bot data",
                context={"path": str(self.path)},
                original_error=e,
            )
        log_storage_operation(
            "save",
            str(self.path),
            duration_ms=(time.time() - start_time) * 1000,
            size_bytes=len(payload),
        )

    async def _commit(self, data: BotData) -> None:
        """
        Write ``data`` and make it the current state. Caller holds the lock.

        The in-memory state is left untouched when the write fails.
        """
        await self._write_locked(data)
        self.data = data

    def _atomic_write(self, payload: str) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    async def _periodic_flush(self) -> None:
        while True:
            await asyncio.sleep(self.config.flush_interval_seconds)
            try:
                await self.save()
            except StorageError as e:
                # Next tick retries; mutations also save on their own
                self.logger.warning("Periodic flush failed", error=str(e))

    async def close(self) -> None:
        """Stop the periodic flush and write the document one last time."""
        if self._closed:
            return
        self._closed = True

        if self._flush_task:
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
            self._flush_task = None

        await self.save()
        self.logger.info("Data store closed", path=str(self.path))

    # Channels

    @property
    def channels(self) -> List[Channel]:
        return list(self.data.channels)

    async def replace_channels(self, channels: List[Channel]) -> None:
        """Replace the channel directory wholesale and persist it."""
        async with self._lock:
            await self._commit(self.data.model_copy(update={"channels": list(channels)}))

    # Announcements

    async def record_announcement(self, announcement: Announcement) -> Announcement:
        """
        Prepend an announcement to the history and bump the stats.

        The history is trimmed to ``max_announcements`` entries, dropping
        the oldest.

        Args:
            announcement: The announcement that was sent

        Returns:
            The stored announcement
        """
        async with self._lock:
            history = self.data.announcements
            if history and announcement.id <= history[0].id:
                announcement = announcement.model_copy(update={"id": history[0].id + 1})

            stats = self.data.stats.model_copy(update={
                "total_announcements": self.data.stats.total_announcements + 1,
                "last_activity": utc_now_iso(),
            })
            await self._commit(self.data.model_copy(update={
                "announcements": [announcement, *history][:self.config.max_announcements],
                "stats": stats,
            }))
            return announcement

    def list_announcements(self, page: int = 1, limit: int = 20) -> Tuple[List[Announcement], Dict[str, int]]:
        """
        Return one page of the newest-first history.

        Args:
            page: 1-based page number
            limit: Page size

        Returns:
            The page entries and the pagination block
        """
        total = len(self.data.announcements)
        offset = (page - 1) * limit
        entries = self.data.announcements[offset:offset + limit]
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        }
        return entries, pagination

    @property
    def stats(self) -> Stats:
        return self.data.stats.model_copy()

    # Templates

    def list_templates(self) -> List[Template]:
        return list(self.data.templates)

    def get_template(self, template_id: int) -> Template:
        for template in self.data.templates:
            if template.id == template_id:
                return template
        raise NotFoundError("Template not found", context={"template_id": template_id})

    def _check_name_available(self, name: str, exclude_id: Optional[int] = None) -> None:
        lowered = name.lower()
        for template in self.data.templates:
            if template.id != exclude_id and template.name.lower() == lowered:
                raise InvalidRequestError(
                    "A template with this name already exists",
                    context={"name": name},
                )

    def _next_template_id(self) -> int:
        candidate = timestamp_ms()
        if self.data.templates:
            candidate = max(candidate, max(t.id for t in self.data.templates) + 1)
        return candidate

    async def create_template(
        self,
        name: Optional[str],
        content: Optional[str],
        category: Optional[str] = None,
    ) -> Template:
        """
        Create a template.

        Raises:
            InvalidRequestError: If name or content is missing or the name is taken
        """
        name = (_text_field(name, "name") or "").strip()
        content = (_text_field(content, "content") or "").strip()
        category = _text_field(category, "category")
        if not name or not content:
            raise InvalidRequestError("Name and content are required")

        async with self._lock:
            self._check_name_available(name)
            template = Template(
                id=self._next_template_id(),
                name=name,
                content=content,
                category=(category or "").strip() or DEFAULT_TEMPLATE_CATEGORY,
            )
            await self._commit(self.data.model_copy(update={
                "templates": [*self.data.templates, template],
            }))

        self.logger.info("Template created", template_id=template.id, name=template.name)
        return template

    async def update_template(
        self,
        template_id: int,
        name: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Template:
        """
        Update a template. Omitted fields keep their current value.

        Raises:
            NotFoundError: If no template has this id
            InvalidRequestError: If a field is blank or the new name is taken
        """
        name = _text_field(name, "name")
        content = _text_field(content, "content")
        category = _text_field(category, "category")

        changes: Dict[str, Any] = {}
        if name is not None:
            if not name.strip():
                raise InvalidRequestError("Name cannot be empty")
            changes["name"] = name.strip()
        if content is not None:
            if not content.strip():
                raise InvalidRequestError("Content cannot be empty")
            changes["content"] = content.strip()
        if category is not None:
            changes["category"] = category.strip() or DEFAULT_TEMPLATE_CATEGORY

        async with self._lock:
            current = self.get_template(template_id)
            if "name" in changes:
                self._check_name_available(changes["name"], exclude_id=template_id)

            changes["updated_at"] = utc_now_iso()
            updated = current.model_copy(update=changes)
            await self._commit(self.data.model_copy(update={
                "templates": [updated if t.id == template_id else t for t in self.data.templates],
            }))

        self.logger.info("Template updated", template_id=template_id)
        return updated

    async def delete_template(self, template_id: int) -> None:
        """
        Delete a template.

        Raises:
            NotFoundError: If no template has this id
        """
        async with self._lock:
            self.get_template(template_id)
            await self._commit(self.data.model_copy(update={
                "templates": [t for t in self.data.templates if t.id != template_id],
            }))

        self.logger.info("Template deleted", template_id=template_id)
