"""Guest-mode persistence over a key-value store."""

import json
import logging
from typing import Any

from moya.domain.entities import Item, Settings, TagSortOrder
from moya.domain.entities.item import item_from_record, item_to_record
from moya.domain.repositories import KeyValueStore

logger = logging.getLogger(__name__)

ITEMS_KEY = "moya_items"
CATEGORIES_KEY = "moya_categories"
TAG_COLORS_KEY = "moya_tag_colors"
CUSTOM_TAG_ORDER_KEY = "moya_custom_tag_order"
TAG_SORT_ORDER_KEY = "moya_tag_sort_order"
MIGRATION_DONE_KEY = "moya_migration_done"


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class KeyValueLocalPersistence:
    """LocalPersistence backed by a KeyValueStore.

    Each value is a JSON document under a fixed key. Corrupted values are
    logged and read back as empty.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def _load_json(self, key: str, expected: type) -> Any:
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed JSON under key %s", key)
            return None
        if not isinstance(value, expected):
            logger.warning(
                "Ignoring value of unexpected type %s under key %s",
                type(value).__name__,
                key,
            )
            return None
        return value

    async def load_items(self) -> list[Item]:
        records = await self._load_json(ITEMS_KEY, list) or []
        items = []
        for record in records:
            if not isinstance(record, dict):
                continue
            item = item_from_record(record)
            if item is not None:
                items.append(item)
        return items

    async def save_items(self, items: list[Item]) -> None:
        await self._store.set(ITEMS_KEY, _dumps([item_to_record(i) for i in items]))

    async def clear_items(self) -> None:
        await self._store.remove(ITEMS_KEY)

    async def load_settings(self, default_categories: list[str]) -> Settings:
        categories = await self._load_json(CATEGORIES_KEY, list)
        tag_colors = await self._load_json(TAG_COLORS_KEY, dict) or {}
        custom_order = await self._load_json(CUSTOM_TAG_ORDER_KEY, list) or []

        sort_order = TagSortOrder.USAGE
        raw_sort = await self._store.get(TAG_SORT_ORDER_KEY)
        if raw_sort is not None:
            try:
                sort_order = TagSortOrder(raw_sort)
            except ValueError:
                logger.warning("Ignoring unknown tag sort order %r", raw_sort)

        if categories is None:
            categories = default_categories

        return Settings(
            categories=[c for c in categories if isinstance(c, str)],
            tag_colors={
                str(k): v for k, v in tag_colors.items() if isinstance(v, str)
            },
            custom_tag_order=[t for t in custom_order if isinstance(t, str)],
            tag_sort_order=sort_order,
        )

    async def save_categories(self, categories: list[str]) -> None:
        await self._store.set(CATEGORIES_KEY, _dumps(categories))

    async def save_tag_colors(self, tag_colors: dict[str, str]) -> None:
        await self._store.set(TAG_COLORS_KEY, _dumps(tag_colors))

    async def save_custom_tag_order(self, order: list[str]) -> None:
        await self._store.set(CUSTOM_TAG_ORDER_KEY, _dumps(order))

    async def save_tag_sort_order(self, order: str) -> None:
        await self._store.set(TAG_SORT_ORDER_KEY, order)

    async def is_migration_done(self) -> bool:
        return await self._store.get(MIGRATION_DONE_KEY) == "true"

    async def set_migration_done(self, done: bool) -> None:
        if done:
            await self._store.set(MIGRATION_DONE_KEY, "true")
        else:
            await self._store.remove(MIGRATION_DONE_KEY)
