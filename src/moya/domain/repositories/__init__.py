"""Repository interfaces."""

from moya.domain.repositories.blob_store import BlobStore
from moya.domain.repositories.local_persistence import KeyValueStore, LocalPersistence
from moya.domain.repositories.remote_store import (
    ErrorListener,
    ItemsSnapshotListener,
    RemoteStore,
    SettingsSnapshotListener,
)

__all__ = [
    "BlobStore",
    "ErrorListener",
    "ItemsSnapshotListener",
    "KeyValueStore",
    "LocalPersistence",
    "RemoteStore",
    "SettingsSnapshotListener",
]
