"""Shared fixtures and in-memory fakes."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from moya.application.services import (
    Configured,
    ItemStore,
    NotificationCenter,
    StaticMigrationPrompt,
    SyncController,
    Unconfigured,
)
from moya.config import DEFAULT_CATEGORIES
from moya.domain.entities import Subscription
from moya.infrastructure.auth import LocalAuthGateway
from moya.infrastructure.persistence import FileBlobStore, KeyValueLocalPersistence


class DictKeyValueStore:
    """KeyValueStore kept in a dict."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self.data)


class FakeRemoteStore:
    """RemoteStore kept in memory, with failure injection.

    Attributes:
        failing_operations: Operation names that raise ConnectionError.
        failing_texts: add_item calls whose ``text`` is listed fail.
        failing_item_ids: update_item calls for these ids fail.
        delay: Seconds every call sleeps before doing anything.
    """

    def __init__(self) -> None:
        self.items: dict[str, dict[str, dict[str, Any]]] = {}
        self.settings: dict[str, dict[str, Any]] = {}
        self.failing_operations: set[str] = set()
        self.failing_texts: set[str] = set()
        self.failing_item_ids: set[str] = set()
        self.delay = 0.0
        self.add_calls: list[tuple[str, dict[str, Any], datetime | None]] = []
        self.item_listeners: dict[str, list[tuple[Callable, Callable]]] = {}
        self.settings_listeners: dict[str, list[tuple[Callable, Callable]]] = {}
        self._counter = 0

    async def _enter(self, operation: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if operation in self.failing_operations:
            raise ConnectionError(f"{operation} unavailable")

    async def add_item(
        self,
        user_id: str,
        fields: dict[str, Any],
        created_at: datetime | None = None,
    ) -> str:
        await self._enter("add_item")
        if fields.get("text") in self.failing_texts:
            raise ConnectionError("write rejected")
        self._counter += 1
        doc_id = f"doc-{self._counter}"
        created = created_at or datetime.now(timezone.utc)
        self.items.setdefault(user_id, {})[doc_id] = {
            **fields,
            "id": doc_id,
            "createdAt": created.isoformat(),
        }
        self.add_calls.append((user_id, dict(fields), created_at))
        self.publish_items(user_id)
        return doc_id

    async def update_item(
        self, user_id: str, item_id: str, fields: dict[str, Any]
    ) -> None:
        await self._enter("update_item")
        if item_id in self.failing_item_ids:
            raise ConnectionError("write rejected")
        self.items[user_id][item_id].update(fields)
        self.publish_items(user_id)

    async def delete_item(self, user_id: str, item_id: str) -> None:
        await self._enter("delete_item")
        self.items.get(user_id, {}).pop(item_id, None)
        self.publish_items(user_id)

    async def merge_settings(self, user_id: str, fields: dict[str, Any]) -> None:
        await self._enter("merge_settings")
        self.settings.setdefault(user_id, {}).update(fields)
        self.publish_settings(user_id)

    async def subscribe_items(
        self, user_id: str, on_snapshot: Callable, on_error: Callable
    ) -> Subscription:
        await self._enter("subscribe_items")
        entry = (on_snapshot, on_error)
        listeners = self.item_listeners.setdefault(user_id, [])
        listeners.append(entry)
        on_snapshot(self.records(user_id))
        return Subscription(lambda: listeners.remove(entry))

    async def subscribe_settings(
        self, user_id: str, on_snapshot: Callable, on_error: Callable
    ) -> Subscription:
        await self._enter("subscribe_settings")
        entry = (on_snapshot, on_error)
        listeners = self.settings_listeners.setdefault(user_id, [])
        listeners.append(entry)
        document = self.settings.get(user_id)
        on_snapshot(dict(document) if document is not None else None)
        return Subscription(lambda: listeners.remove(entry))

    def records(self, user_id: str) -> list[dict[str, Any]]:
        records = sorted(
            self.items.get(user_id, {}).values(),
            key=lambda record: record["createdAt"],
            reverse=True,
        )
        return [dict(record) for record in records]

    def publish_items(self, user_id: str) -> None:
        for on_snapshot, _ in list(self.item_listeners.get(user_id, [])):
            on_snapshot(self.records(user_id))

    def publish_settings(self, user_id: str) -> None:
        document = self.settings.get(user_id)
        for on_snapshot, _ in list(self.settings_listeners.get(user_id, [])):
            on_snapshot(dict(document) if document is not None else None)

    def emit_error(self, user_id: str, error: Exception) -> None:
        for _, on_error in list(self.item_listeners.get(user_id, [])):
            on_error(error)

    def listener_count(self, user_id: str) -> int:
        return len(self.item_listeners.get(user_id, [])) + len(
            self.settings_listeners.get(user_id, [])
        )


@pytest.fixture
def kv_data() -> DictKeyValueStore:
    """Create an in-memory key-value store."""
    return DictKeyValueStore()


@pytest.fixture
def local(kv_data: DictKeyValueStore) -> KeyValueLocalPersistence:
    """Create local persistence over the in-memory store."""
    return KeyValueLocalPersistence(kv_data)


@pytest.fixture
def remote() -> FakeRemoteStore:
    """Create a fake remote store."""
    return FakeRemoteStore()


@pytest.fixture
def auth() -> LocalAuthGateway:
    """Create an in-memory auth gateway."""
    return LocalAuthGateway()


@pytest.fixture
def notifications() -> NotificationCenter:
    """Create a notification center."""
    return NotificationCenter()


@pytest.fixture
def blob_store(tmp_path) -> FileBlobStore:
    """Create a blob store under tmp_path."""
    return FileBlobStore(tmp_path / "blobs")


@pytest.fixture
def make_controller(
    local: KeyValueLocalPersistence,
    remote: FakeRemoteStore,
    auth: LocalAuthGateway,
    notifications: NotificationCenter,
    blob_store: FileBlobStore,
) -> Callable[..., SyncController]:
    """Return a factory building controllers wired to the fakes."""

    def factory(
        configured: bool = True,
        migration_prompt: Any = None,
        remote_timeout: float = 1.0,
    ) -> SyncController:
        backend = Configured(store=remote, auth=auth) if configured else Unconfigured()
        return SyncController(
            local=local,
            backend=backend,
            item_store=ItemStore(),
            notifier=notifications,
            migration_prompt=migration_prompt or StaticMigrationPrompt(True),
            blob_store=blob_store,
            default_categories=list(DEFAULT_CATEGORIES),
            remote_timeout=remote_timeout,
        )

    return factory
