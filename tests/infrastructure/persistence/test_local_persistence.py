"""Tests for SQLiteKeyValueStore and KeyValueLocalPersistence."""

import json
from datetime import datetime, timezone

import pytest

from moya.domain.entities import Item, ItemStatus, TagSortOrder
from moya.infrastructure.persistence import (
    KeyValueLocalPersistence,
    SQLiteKeyValueStore,
)
from moya.infrastructure.persistence.local_persistence import (
    CATEGORIES_KEY,
    ITEMS_KEY,
    MIGRATION_DONE_KEY,
    TAG_COLORS_KEY,
    TAG_SORT_ORDER_KEY,
)

DEFAULTS = ["HTML", "CSS", "React", "수학", "알고리즘"]


@pytest.fixture
def kv_store(session_factory) -> SQLiteKeyValueStore:
    """Create test key-value store."""
    return SQLiteKeyValueStore(session_factory)


@pytest.fixture
def persistence(kv_store: SQLiteKeyValueStore) -> KeyValueLocalPersistence:
    """Create test local persistence."""
    return KeyValueLocalPersistence(kv_store)


def create_item(id: str, text: str = "text", categories: list[str] | None = None) -> Item:
    return Item(
        id=id,
        text=text,
        categories=categories or ["기타"],
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


class TestKeyValueStore:
    """SQLiteKeyValueStore tests."""

    async def test_get_missing(self, kv_store: SQLiteKeyValueStore) -> None:
        assert await kv_store.get("nope") is None

    async def test_set_and_get(self, kv_store: SQLiteKeyValueStore) -> None:
        await kv_store.set("k", "v")

        assert await kv_store.get("k") == "v"

    async def test_set_overwrites(self, kv_store: SQLiteKeyValueStore) -> None:
        await kv_store.set("k", "v1")
        await kv_store.set("k", "v2")

        assert await kv_store.get("k") == "v2"
        assert await kv_store.keys() == ["k"]

    async def test_remove(self, kv_store: SQLiteKeyValueStore) -> None:
        await kv_store.set("k", "v")

        await kv_store.remove("k")
        await kv_store.remove("k")  # removing twice is fine

        assert await kv_store.get("k") is None

    async def test_keys_sorted(self, kv_store: SQLiteKeyValueStore) -> None:
        await kv_store.set("b", "1")
        await kv_store.set("a", "2")

        assert await kv_store.keys() == ["a", "b"]


class TestItems:
    """Item persistence tests."""

    async def test_empty(self, persistence: KeyValueLocalPersistence) -> None:
        assert await persistence.load_items() == []

    async def test_save_and_load(self, persistence: KeyValueLocalPersistence) -> None:
        items = [
            create_item("2", "second #수학", ["수학"]),
            create_item("1", "first"),
        ]

        await persistence.save_items(items)

        assert await persistence.load_items() == items

    async def test_stored_as_json_array(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await persistence.save_items([create_item("1", "한글 텍스트")])

        raw = await kv_store.get(ITEMS_KEY)
        assert raw is not None
        assert "한글 텍스트" in raw
        assert json.loads(raw)[0]["id"] == "1"

    async def test_clear(self, persistence: KeyValueLocalPersistence) -> None:
        await persistence.save_items([create_item("1")])

        await persistence.clear_items()

        assert await persistence.load_items() == []

    async def test_legacy_records_normalised(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await kv_store.set(
            ITEMS_KEY,
            json.dumps(
                [
                    {
                        "id": 1700000000000,
                        "text": "old",
                        "category": "CSS",
                        "summary": "s",
                        "status": "solved",
                        "createdAt": "2023-11-14T22:13:20.000Z",
                    }
                ]
            ),
        )

        items = await persistence.load_items()

        assert len(items) == 1
        assert items[0].id == "1700000000000"
        assert items[0].categories == ["CSS"]
        assert items[0].description == "s"
        assert items[0].status is ItemStatus.SOLVED

    async def test_malformed_json_reads_empty(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await kv_store.set(ITEMS_KEY, "{not json")

        assert await persistence.load_items() == []

    async def test_wrong_type_reads_empty(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await kv_store.set(ITEMS_KEY, json.dumps({"id": "1", "text": "x"}))

        assert await persistence.load_items() == []

    async def test_bad_entries_skipped(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await kv_store.set(
            ITEMS_KEY,
            json.dumps(["junk", {"id": "1"}, {"id": "2", "text": "kept"}]),
        )

        items = await persistence.load_items()

        assert [item.id for item in items] == ["2"]


class TestSettings:
    """Settings persistence tests."""

    async def test_defaults_when_nothing_stored(
        self, persistence: KeyValueLocalPersistence
    ) -> None:
        settings = await persistence.load_settings(DEFAULTS)

        assert settings.categories == DEFAULTS
        assert settings.tag_colors == {}
        assert settings.custom_tag_order == []
        assert settings.tag_sort_order is TagSortOrder.USAGE

    async def test_stored_fields(self, persistence: KeyValueLocalPersistence) -> None:
        await persistence.save_categories(["a", "b"])
        await persistence.save_tag_colors({"a": "#000000"})
        await persistence.save_custom_tag_order(["b", "a"])
        await persistence.save_tag_sort_order("custom")

        settings = await persistence.load_settings(DEFAULTS)

        assert settings.categories == ["a", "b"]
        assert settings.tag_colors == {"a": "#000000"}
        assert settings.custom_tag_order == ["b", "a"]
        assert settings.tag_sort_order is TagSortOrder.CUSTOM

    async def test_empty_category_list_kept(
        self, persistence: KeyValueLocalPersistence
    ) -> None:
        await persistence.save_categories([])

        assert (await persistence.load_settings(DEFAULTS)).categories == []

    async def test_corrupted_values_fall_back(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await kv_store.set(CATEGORIES_KEY, "][")
        await kv_store.set(TAG_COLORS_KEY, json.dumps(["not", "a", "map"]))
        await kv_store.set(TAG_SORT_ORDER_KEY, "sideways")

        settings = await persistence.load_settings(DEFAULTS)

        assert settings.categories == DEFAULTS
        assert settings.tag_colors == {}
        assert settings.tag_sort_order is TagSortOrder.USAGE


class TestMigrationFlag:
    """Migration flag tests."""

    async def test_default_false(self, persistence: KeyValueLocalPersistence) -> None:
        assert await persistence.is_migration_done() is False

    async def test_set_and_clear(
        self, persistence: KeyValueLocalPersistence, kv_store: SQLiteKeyValueStore
    ) -> None:
        await persistence.set_migration_done(True)
        assert await persistence.is_migration_done() is True
        assert await kv_store.get(MIGRATION_DONE_KEY) == "true"

        await persistence.set_migration_done(False)
        assert await persistence.is_migration_done() is False
        assert await kv_store.get(MIGRATION_DONE_KEY) is None
