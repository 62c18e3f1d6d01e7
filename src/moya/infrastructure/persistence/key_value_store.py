"""SQLite implementation of KeyValueStore."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from moya.infrastructure.persistence.models import KeyValueModel


class SQLiteKeyValueStore:
    """Flat string key-value store in a single SQLite table."""

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
    ) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as session:
            model = await session.get(KeyValueModel, key)
            return model.value if model is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            await session.merge(
                KeyValueModel(
                    key=key, value=value, updated_at=datetime.now(timezone.utc)
                )
            )
            await session.commit()

    async def remove(self, key: str) -> None:
        async with self._session_factory() as session:
            model = await session.get(KeyValueModel, key)
            if model is not None:
                await session.delete(model)
                await session.commit()

    async def keys(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.exec(
                select(KeyValueModel.key).order_by(KeyValueModel.key)
            )
            return list(result.all())
