"""Tests for the JSON document store."""

import asyncio
import json

import pytest

from discord_announcer.storage.models import Announcement
from discord_announcer.storage.store import DataStore
from discord_announcer.config import StorageConfig
from discord_announcer.utils.exceptions import InvalidRequestError, NotFoundError, StorageError


def make_announcement(index: int) -> Announcement:
    return Announcement(
        channel_id="100",
        channel_name="announcements",
        guild_name="Test Server",
        content=f"announcement {index}",
        author_id="web-panel",
        author_tag="Web Panel",
    )


async def test_initialize_creates_missing_file(test_config):
    path = test_config.storage.path
    assert not path.exists()

    data_store = DataStore(test_config.storage)
    await data_store.initialize()
    await data_store.close()

    document = json.loads(path.read_text(encoding="utf-8"))
    assert set(document) == {"announcements", "channels", "templates", "stats"}
    assert document["stats"]["totalAnnouncements"] == 0


async def test_history_is_capped_newest_first(store):
    for index in range(105):
        await store.record_announcement(make_announcement(index))

    entries, pagination = store.list_announcements(page=1, limit=100)
    assert pagination["total"] == 100
    assert entries[0].content == "announcement 104"
    assert entries[-1].content == "announcement 5"
    assert store.stats.total_announcements == 105


async def test_announcement_ids_strictly_decrease_down_the_history(store):
    for index in range(5):
        await store.record_announcement(make_announcement(index))

    ids = [entry.id for entry in store.list_announcements(1, 10)[0]]
    assert ids == sorted(ids, reverse=True)
    assert len(set(ids)) == 5


async def test_second_page_returns_entries_21_to_40(store):
    for index in range(50):
        await store.record_announcement(make_announcement(index))

    entries, pagination = store.list_announcements(page=2, limit=20)

    assert [entry.content for entry in entries] == [
        f"announcement {index}" for index in range(29, 9, -1)
    ]
    assert pagination == {"page": 2, "limit": 20, "total": 50, "totalPages": 3}


async def test_page_past_the_end_is_empty(store):
    await store.record_announcement(make_announcement(0))

    entries, pagination = store.list_announcements(page=3, limit=20)
    assert entries == []
    assert pagination["totalPages"] == 1


async def test_state_survives_reload(test_config, store):
    await store.record_announcement(make_announcement(1))
    await store.create_template("Weekly", "See you Friday", "Events")

    reloaded = DataStore(test_config.storage)
    await reloaded.initialize()
    try:
        entries, _ = reloaded.list_announcements()
        assert entries[0].content == "announcement 1"
        assert reloaded.list_templates()[0].name == "Weekly"
        assert reloaded.stats.total_announcements == 1
    finally:
        await reloaded.close()


async def test_save_leaves_no_temporary_files(test_config, store):
    await store.record_announcement(make_announcement(1))
    await store.save()

    leftovers = [p.name for p in test_config.storage.path.parent.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []


async def test_document_uses_camel_case_keys(test_config, store):
    await store.record_announcement(make_announcement(1))

    document = json.loads(test_config.storage.path.read_text(encoding="utf-8"))
    entry = document["announcements"][0]
    assert {"channelId", "channelName", "guildName", "authorId", "authorTag", "timestamp"} <= set(entry)


async def test_corrupted_file_is_moved_aside(test_config):
    path = test_config.storage.path
    path.write_text("{not json", encoding="utf-8")

    data_store = DataStore(test_config.storage)
    await data_store.initialize()
    await data_store.close()

    backups = list(path.parent.glob("botData.json.corrupt-*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "{not json"
    assert json.loads(path.read_text(encoding="utf-8"))["announcements"] == []


async def test_partial_document_takes_defaults(test_config):
    test_config.storage.path.write_text(
        json.dumps({"templates": [{"id": 1, "name": "Old", "content": "Body", "createdAt": "x"}]}),
        encoding="utf-8",
    )

    data_store = DataStore(test_config.storage)
    await data_store.initialize()
    try:
        template = data_store.get_template(1)
        assert template.category == "General"
        assert data_store.stats.total_announcements == 0
    finally:
        await data_store.close()


async def test_template_defaults(store):
    template = await store.create_template("  Maintenance ", "  Down at 10pm  ")

    assert template.name == "Maintenance"
    assert template.content == "Down at 10pm"
    assert template.category == "General"
    assert template.to_dict()["usageCount"] == 0
    assert "updatedAt" not in template.to_dict()


async def test_duplicate_template_name_rejected_case_insensitively(store):
    await store.create_template("Weekly Update", "Body")

    with pytest.raises(InvalidRequestError):
        await store.create_template("weekly update", "Other body")

    assert len(store.list_templates()) == 1


async def test_concurrent_creates_cannot_both_pass_uniqueness(store):
    results = await asyncio.gather(
        store.create_template("Launch", "One"),
        store.create_template("LAUNCH", "Two"),
        return_exceptions=True,
    )

    assert sum(isinstance(r, InvalidRequestError) for r in results) == 1
    assert len(store.list_templates()) == 1


async def test_template_ids_are_unique_when_created_quickly(store):
    created = [await store.create_template(f"T{i}", "Body") for i in range(5)]
    assert len({t.id for t in created}) == 5


@pytest.mark.parametrize("name, content", [("", "Body"), ("Name", ""), (None, "Body"), ("   ", "Body")])
async def test_template_requires_name_and_content(store, name, content):
    with pytest.raises(InvalidRequestError):
        await store.create_template(name, content)


async def test_update_template(store):
    template = await store.create_template("Weekly", "Body", "Events")

    updated = await store.update_template(template.id, content="New body")

    assert updated.content == "New body"
    assert updated.name == "Weekly"
    assert updated.category == "Events"
    assert updated.updated_at is not None
    assert store.get_template(template.id).content == "New body"


async def test_update_template_may_change_case_of_own_name(store):
    template = await store.create_template("Weekly", "Body")

    updated = await store.update_template(template.id, name="WEEKLY")
    assert updated.name == "WEEKLY"


async def test_update_template_rejects_name_of_another(store):
    await store.create_template("Weekly", "Body")
    other = await store.create_template("Monthly", "Body")

    with pytest.raises(InvalidRequestError):
        await store.update_template(other.id, name="weekly")


async def test_update_and_delete_unknown_template(store):
    with pytest.raises(NotFoundError):
        await store.update_template(12345, name="Nope")
    with pytest.raises(NotFoundError):
        await store.delete_template(12345)


async def test_delete_template(store):
    template = await store.create_template("Weekly", "Body")

    await store.delete_template(template.id)

    assert store.list_templates() == []


async def test_oversized_history_is_trimmed_on_load(test_config):
    entries = [make_announcement(index).to_dict() for index in range(150)]
    for offset, entry in enumerate(entries):
        entry["id"] = 10_000 - offset
    test_config.storage.path.write_text(json.dumps({"announcements": entries}), encoding="utf-8")

    data_store = DataStore(test_config.storage)
    await data_store.initialize()
    try:
        page, pagination = data_store.list_announcements(1, 20)
        assert pagination["total"] == 100
        assert page[0].content == "announcement 0"
        assert data_store.list_announcements(5, 20)[0][-1].content == "announcement 99"
    finally:
        await data_store.close()


@pytest.mark.parametrize("fields", [
    {"name": 123, "content": "Body"},
    {"name": "Weekly", "content": ["x"]},
    {"name": "Weekly", "content": "Body", "category": 7},
])
async def test_template_fields_must_be_strings(store, fields):
    with pytest.raises(InvalidRequestError):
        await store.create_template(fields["name"], fields["content"], fields.get("category"))


async def test_update_template_rejects_non_string_fields(store):
    template = await store.create_template("Weekly", "Body")

    with pytest.raises(InvalidRequestError):
        await store.update_template(template.id, content=["x"])
    assert store.get_template(template.id).content == "Body"


def failing_write(payload: str) -> None:
    raise OSError("disk full")


async def test_failed_write_leaves_state_unchanged(store, monkeypatch):
    kept = await store.create_template("Weekly", "Body")
    monkeypatch.setattr(store, "_atomic_write", failing_write)

    with pytest.raises(StorageError):
        await store.create_template("Ghost", "Body")
    with pytest.raises(StorageError):
        await store.update_template(kept.id, content="Changed")
    with pytest.raises(StorageError):
        await store.delete_template(kept.id)
    with pytest.raises(StorageError):
        await store.record_announcement(make_announcement(1))

    assert [t.name for t in store.list_templates()] == ["Weekly"]
    assert store.get_template(kept.id).content == "Body"
    assert store.list_announcements()[1]["total"] == 0
    assert store.stats.total_announcements == 0


async def test_announcement_without_author_keeps_null_author_id(test_config, store):
    await store.record_announcement(Announcement(
        channel_id="100", channel_name="announcements", guild_name="Test Server", content="Hi",
    ))

    document = json.loads(test_config.storage.path.read_text(encoding="utf-8"))
    assert document["announcements"][0]["authorId"] is None
    assert store.list_announcements()[0][0].to_dict()["authorId"] is None


async def test_periodic_flush_rewrites_document(tmp_path):
    path = tmp_path / "botData.json"
    data_store = DataStore(StorageConfig(path=path, flush_interval_seconds=0.01))
    await data_store.initialize()
    try:
        path.unlink()
        for _ in range(100):
            await asyncio.sleep(0.01)
            if path.exists():
                break
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8"))["stats"]["totalAnnouncements"] == 0
    finally:
        await data_store.close()
