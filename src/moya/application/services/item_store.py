"""In-memory item store driving the views."""

import asyncio
import logging
from collections.abc import Callable

from moya.domain.entities import Item, Settings, Subscription

logger = logging.getLogger(__name__)

StoreListener = Callable[[], None]


class ItemStore:
    """Reconciled items and settings currently shown to the user.

    Only the sync controller writes to it; everything else reads.
    Listeners are called after every change.
    """

    def __init__(self) -> None:
        self._items: list[Item] = []
        self._settings = Settings()
        self._recently_added_id: str | None = None
        self._recent_timer: asyncio.TimerHandle | None = None
        self._listeners: list[StoreListener] = []

    @property
    def items(self) -> list[Item]:
        return list(self._items)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def recently_added_id(self) -> str | None:
        """Id of the item just created in the cloud, for highlighting."""
        return self._recently_added_id

    def get(self, item_id: str) -> Item | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def __contains__(self, item_id: object) -> bool:
        return any(item.id == item_id for item in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def replace_items(self, items: list[Item]) -> None:
        self._items = list(items)
        self._changed()

    def replace_settings(self, settings: Settings) -> None:
        self._settings = settings
        self._changed()

    def replace(self, items: list[Item], settings: Settings) -> None:
        self._items = list(items)
        self._settings = settings
        self._changed()

    def clear(self) -> None:
        self._cancel_recent_timer()
        self._recently_added_id = None
        self.replace([], Settings())

    def mark_recent(self, item_id: str, ttl: float = 0.0) -> None:
        """Remember a newly created item id.

        Args:
            item_id: Item to highlight.
            ttl: Seconds until the mark expires. 0 keeps it until replaced.
        """
        self._cancel_recent_timer()
        self._recently_added_id = item_id
        if ttl > 0:
            loop = asyncio.get_running_loop()
            self._recent_timer = loop.call_later(ttl, self._expire_recent, item_id)
        self._changed()

    def _expire_recent(self, item_id: str) -> None:
        self._recent_timer = None
        if self._recently_added_id == item_id:
            self._recently_added_id = None
            self._changed()

    def _cancel_recent_timer(self) -> None:
        if self._recent_timer is not None:
            self._recent_timer.cancel()
            self._recent_timer = None

    def subscribe(self, listener: StoreListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(lambda: self._listeners.remove(listener))

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Item store listener raised")
