"""Persistence infrastructure."""

from moya.infrastructure.persistence.blob_store import FileBlobStore
from moya.infrastructure.persistence.database import DatabaseManager
from moya.infrastructure.persistence.document_store import SQLiteDocumentStore
from moya.infrastructure.persistence.exceptions import (
    DocumentNotFoundError,
    PersistenceError,
)
from moya.infrastructure.persistence.key_value_store import SQLiteKeyValueStore
from moya.infrastructure.persistence.local_persistence import (
    KeyValueLocalPersistence,
)
from moya.infrastructure.persistence.models import (
    LOCAL_TABLES,
    REMOTE_TABLES,
    ItemDocumentModel,
    KeyValueModel,
    SettingsDocumentModel,
)

__all__ = [
    "LOCAL_TABLES",
    "REMOTE_TABLES",
    "DatabaseManager",
    "DocumentNotFoundError",
    "FileBlobStore",
    "ItemDocumentModel",
    "KeyValueLocalPersistence",
    "KeyValueModel",
    "PersistenceError",
    "SQLiteDocumentStore",
    "SQLiteKeyValueStore",
    "SettingsDocumentModel",
]
