"""RemoteStore Protocol."""

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from moya.domain.entities import Subscription

# Snapshot records carry the document id under "id"
ItemsSnapshotListener = Callable[[list[dict[str, Any]]], None]
SettingsSnapshotListener = Callable[[dict[str, Any] | None], None]
ErrorListener = Callable[[Exception], None]


class RemoteStore(Protocol):
    """Realtime document store with per-user collections.

    Every write produces a full snapshot for the affected user's listeners.
    Several writes may be coalesced into one snapshot.
    """

    async def add_item(
        self,
        user_id: str,
        fields: dict[str, Any],
        created_at: datetime | None = None,
    ) -> str:
        """Create an item document.

        Args:
            user_id: Owning user.
            fields: Document body (without id or createdAt).
            created_at: Creation time to keep. None assigns the server time.

        Returns:
            The new document id.
        """
        ...

    async def update_item(
        self, user_id: str, item_id: str, fields: dict[str, Any]
    ) -> None:
        """Update fields of an item document.

        Raises:
            DocumentNotFoundError: The document does not exist.
        """
        ...

    async def delete_item(self, user_id: str, item_id: str) -> None:
        """Delete an item document permanently."""
        ...

    async def merge_settings(self, user_id: str, fields: dict[str, Any]) -> None:
        """Merge top-level fields into the user's settings document."""
        ...

    async def subscribe_items(
        self,
        user_id: str,
        on_snapshot: ItemsSnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        """Subscribe to the user's items, newest first.

        The initial snapshot is delivered before this method returns.
        """
        ...

    async def subscribe_settings(
        self,
        user_id: str,
        on_snapshot: SettingsSnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        """Subscribe to the user's settings document (None when absent)."""
        ...
