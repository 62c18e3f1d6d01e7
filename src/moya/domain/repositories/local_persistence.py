"""LocalPersistence and KeyValueStore Protocols."""

from typing import Protocol

from moya.domain.entities import Item, Settings


class KeyValueStore(Protocol):
    """Flat string key-value store (browser localStorage counterpart)."""

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def keys(self) -> list[str]:
        ...


class LocalPersistence(Protocol):
    """Guest-mode storage of items, settings, and the migration flag.

    Malformed stored values read back as empty rather than raising.
    """

    async def load_items(self) -> list[Item]:
        """Load stored guest items in stored order."""
        ...

    async def save_items(self, items: list[Item]) -> None:
        """Overwrite the stored item list with a full snapshot."""
        ...

    async def clear_items(self) -> None:
        """Remove the stored item list."""
        ...

    async def load_settings(self, default_categories: list[str]) -> Settings:
        """Load stored settings.

        Args:
            default_categories: Category list used when none is stored.
        """
        ...

    async def save_categories(self, categories: list[str]) -> None:
        ...

    async def save_tag_colors(self, tag_colors: dict[str, str]) -> None:
        ...

    async def save_custom_tag_order(self, order: list[str]) -> None:
        ...

    async def save_tag_sort_order(self, order: str) -> None:
        ...

    async def is_migration_done(self) -> bool:
        """Whether guest items were already offered for import in this browser."""
        ...

    async def set_migration_done(self, done: bool) -> None:
        ...
