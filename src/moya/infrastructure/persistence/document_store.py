"""SQLite-backed realtime document store (RemoteStore implementation)."""

import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from moya.domain.entities import Subscription
from moya.domain.repositories import (
    ErrorListener,
    ItemsSnapshotListener,
    SettingsSnapshotListener,
)
from moya.infrastructure.persistence.exceptions import DocumentNotFoundError
from moya.infrastructure.persistence.models import (
    ItemDocumentModel,
    SettingsDocumentModel,
)

logger = logging.getLogger(__name__)

# Fields owned by the store, never taken from a write body
_RESERVED_FIELDS = ("id", "createdAt")


def _as_utc(dt: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(eq=False)
class _Listener:
    on_snapshot: Callable[[Any], None]
    on_error: ErrorListener


class SQLiteDocumentStore:
    """Per-user item collection and settings document in SQLite.

    Documents are scoped by app id and user id. After every committed write
    the affected user's listeners receive a full snapshot. Writes are
    serialised; callers may still issue them concurrently.
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        app_id: str,
    ) -> None:
        """Initialise.

        Args:
            session_factory: Async session factory.
            app_id: Application namespace for all documents.
        """
        self._session_factory = session_factory
        self._app_id = app_id
        self._write_lock = asyncio.Lock()
        self._item_listeners: dict[str, list[_Listener]] = {}
        self._settings_listeners: dict[str, list[_Listener]] = {}

    # --- Item collection ---

    async def add_item(
        self,
        user_id: str,
        fields: dict[str, Any],
        created_at: datetime | None = None,
    ) -> str:
        doc_id = uuid4().hex
        body = {k: v for k, v in fields.items() if k not in _RESERVED_FIELDS}
        now = datetime.now(timezone.utc)
        async with self._write_lock:
            async with self._session_factory() as session:
                session.add(
                    ItemDocumentModel(
                        doc_id=doc_id,
                        app_id=self._app_id,
                        user_id=user_id,
                        body=json.dumps(body, ensure_ascii=False),
                        created_at=_as_utc(created_at or now),
                        updated_at=now,
                    )
                )
                await session.commit()
        logger.debug("Added item document %s for user %s", doc_id, user_id)
        await self._publish_items(user_id)
        return doc_id

    async def update_item(
        self, user_id: str, item_id: str, fields: dict[str, Any]
    ) -> None:
        async with self._write_lock:
            async with self._session_factory() as session:
                model = await self._find_item(session, user_id, item_id)
                if model is None:
                    raise DocumentNotFoundError(item_id)
                body = json.loads(model.body)
                body.update(
                    {k: v for k, v in fields.items() if k not in _RESERVED_FIELDS}
                )
                model.body = json.dumps(body, ensure_ascii=False)
                model.updated_at = datetime.now(timezone.utc)
                session.add(model)
                await session.commit()
        await self._publish_items(user_id)

    async def delete_item(self, user_id: str, item_id: str) -> None:
        async with self._write_lock:
            async with self._session_factory() as session:
                stmt = delete(ItemDocumentModel).where(
                    ItemDocumentModel.app_id == self._app_id,  # type: ignore[arg-type]
                    ItemDocumentModel.user_id == user_id,  # type: ignore[arg-type]
                    ItemDocumentModel.doc_id == item_id,  # type: ignore[arg-type]
                )
                await session.execute(stmt)
                await session.commit()
        await self._publish_items(user_id)

    async def list_items(self, user_id: str) -> list[dict[str, Any]]:
        """Return the user's item records, newest first."""
        async with self._session_factory() as session:
            stmt = (
                select(ItemDocumentModel)
                .where(
                    ItemDocumentModel.app_id == self._app_id,
                    ItemDocumentModel.user_id == user_id,
                )
                .order_by(
                    ItemDocumentModel.created_at.desc(),  # type: ignore[attr-defined]
                    ItemDocumentModel.id.desc(),  # type: ignore[union-attr]
                )
            )
            result = await session.exec(stmt)
            return [self._to_record(model) for model in result.all()]

    # --- Settings document ---

    async def merge_settings(self, user_id: str, fields: dict[str, Any]) -> None:
        async with self._write_lock:
            async with self._session_factory() as session:
                model = await self._find_settings(session, user_id)
                if model is None:
                    model = SettingsDocumentModel(
                        app_id=self._app_id, user_id=user_id, body="{}"
                    )
                body = json.loads(model.body)
                body.update(fields)
                model.body = json.dumps(body, ensure_ascii=False)
                model.updated_at = datetime.now(timezone.utc)
                session.add(model)
                await session.commit()
        await self._publish_settings(user_id)

    async def get_settings(self, user_id: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            model = await self._find_settings(session, user_id)
            return json.loads(model.body) if model is not None else None

    # --- Subscriptions ---

    async def subscribe_items(
        self,
        user_id: str,
        on_snapshot: ItemsSnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        listener = _Listener(on_snapshot=on_snapshot, on_error=on_error)
        self._item_listeners.setdefault(user_id, []).append(listener)
        await self._publish_items(user_id, only=listener)
        return Subscription(
            lambda: self._remove_listener(self._item_listeners, user_id, listener)
        )

    async def subscribe_settings(
        self,
        user_id: str,
        on_snapshot: SettingsSnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        listener = _Listener(on_snapshot=on_snapshot, on_error=on_error)
        self._settings_listeners.setdefault(user_id, []).append(listener)
        await self._publish_settings(user_id, only=listener)
        return Subscription(
            lambda: self._remove_listener(self._settings_listeners, user_id, listener)
        )

    def listener_count(self, user_id: str) -> int:
        return len(self._item_listeners.get(user_id, [])) + len(
            self._settings_listeners.get(user_id, [])
        )

    @staticmethod
    def _remove_listener(
        registry: dict[str, list[_Listener]], user_id: str, listener: _Listener
    ) -> None:
        listeners = registry.get(user_id, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            registry.pop(user_id, None)

    async def _publish_items(self, user_id: str, only: _Listener | None = None) -> None:
        listeners = [only] if only else list(self._item_listeners.get(user_id, []))
        if not listeners:
            return
        try:
            records = await self.list_items(user_id)
        except Exception as e:
            logger.exception("Failed to build item snapshot for user %s", user_id)
            self._deliver_error(listeners, e)
            return
        for listener in listeners:
            self._deliver(listener, [dict(record) for record in records])

    async def _publish_settings(
        self, user_id: str, only: _Listener | None = None
    ) -> None:
        listeners = (
            [only] if only else list(self._settings_listeners.get(user_id, []))
        )
        if not listeners:
            return
        try:
            document = await self.get_settings(user_id)
        except Exception as e:
            logger.exception("Failed to build settings snapshot for user %s", user_id)
            self._deliver_error(listeners, e)
            return
        for listener in listeners:
            self._deliver(listener, dict(document) if document is not None else None)

    @staticmethod
    def _deliver(listener: _Listener, snapshot: Any) -> None:
        try:
            listener.on_snapshot(snapshot)
        except Exception:
            logger.exception("Snapshot listener raised")

    @staticmethod
    def _deliver_error(listeners: list[_Listener], error: Exception) -> None:
        for listener in listeners:
            try:
                listener.on_error(error)
            except Exception:
                logger.exception("Error listener raised")

    async def _find_item(
        self, session: AsyncSession, user_id: str, item_id: str
    ) -> ItemDocumentModel | None:
        stmt = select(ItemDocumentModel).where(
            ItemDocumentModel.app_id == self._app_id,
            ItemDocumentModel.user_id == user_id,
            ItemDocumentModel.doc_id == item_id,
        )
        result = await session.exec(stmt)
        return result.first()

    async def _find_settings(
        self, session: AsyncSession, user_id: str
    ) -> SettingsDocumentModel | None:
        stmt = select(SettingsDocumentModel).where(
            SettingsDocumentModel.app_id == self._app_id,
            SettingsDocumentModel.user_id == user_id,
        )
        result = await session.exec(stmt)
        return result.first()

    @staticmethod
    def _to_record(model: ItemDocumentModel) -> dict[str, Any]:
        return {
            **json.loads(model.body),
            "id": model.doc_id,
            "createdAt": _as_utc(model.created_at).isoformat(),
        }
