"""Application services."""

from moya.application.services.item_store import ItemStore
from moya.application.services.notifications import (
    NotificationCenter,
    StaticMigrationPrompt,
)
from moya.application.services.sync_controller import (
    Configured,
    MigrationResult,
    RemoteBackend,
    SyncController,
    Unconfigured,
)

__all__ = [
    "Configured",
    "ItemStore",
    "MigrationResult",
    "NotificationCenter",
    "RemoteBackend",
    "StaticMigrationPrompt",
    "SyncController",
    "Unconfigured",
]
