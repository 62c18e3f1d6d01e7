"""SQLModel table definitions."""

from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class KeyValueModel(SQLModel, table=True):
    """Local key-value storage table."""

    __tablename__ = "local_storage"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ItemDocumentModel(SQLModel, table=True):
    """Per-user item documents of the remote store."""

    __tablename__ = "item_documents"

    id: int | None = Field(default=None, primary_key=True)
    doc_id: str = Field(unique=True, index=True)
    app_id: str = Field(index=True)
    user_id: str = Field(index=True)
    body: str  # JSON object without id/createdAt
    created_at: datetime = Field(index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SettingsDocumentModel(SQLModel, table=True):
    """Per-user settings documents of the remote store."""

    __tablename__ = "settings_documents"

    id: int | None = Field(default=None, primary_key=True)
    app_id: str = Field(index=True)
    user_id: str = Field(index=True)
    body: str  # JSON object
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("app_id", "user_id", name="uq_settings_user"),)


LOCAL_TABLES = [KeyValueModel.__table__]  # type: ignore[attr-defined]
REMOTE_TABLES = [
    ItemDocumentModel.__table__,  # type: ignore[attr-defined]
    SettingsDocumentModel.__table__,  # type: ignore[attr-defined]
]
