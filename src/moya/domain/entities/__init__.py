"""Domain entities."""

from moya.domain.entities.capture import CapturePayload
from moya.domain.entities.filter import (
    FilterCriteria,
    GroupBy,
    ItemGroup,
    StatusFilter,
)
from moya.domain.entities.identity import UserIdentity
from moya.domain.entities.item import (
    MAX_DESCRIPTION_LENGTH,
    MAX_IMAGES,
    MISC_TAG,
    Item,
    ItemStatus,
    item_from_record,
    item_to_record,
)
from moya.domain.entities.notification import Notification, NotificationLevel
from moya.domain.entities.settings import Settings, TagSortOrder
from moya.domain.entities.subscription import Subscription
from moya.domain.entities.sync_state import SyncState

__all__ = [
    "MAX_DESCRIPTION_LENGTH",
    "MAX_IMAGES",
    "MISC_TAG",
    "CapturePayload",
    "FilterCriteria",
    "GroupBy",
    "Item",
    "ItemGroup",
    "ItemStatus",
    "Notification",
    "NotificationLevel",
    "Settings",
    "StatusFilter",
    "Subscription",
    "SyncState",
    "TagSortOrder",
    "UserIdentity",
    "item_from_record",
    "item_to_record",
]
