"""Item entity and its storage-boundary normalisation."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

MISC_TAG = "기타"
MAX_IMAGES = 4
MAX_DESCRIPTION_LENGTH = 200
SCHEMA_VERSION = 2


class ItemStatus(Enum):
    """Resolution status of an item."""

    UNSOLVED = "unsolved"
    SOLVED = "solved"

    def toggled(self) -> "ItemStatus":
        return ItemStatus.SOLVED if self is ItemStatus.UNSOLVED else ItemStatus.UNSOLVED


@dataclass(frozen=True)
class Item:
    """A captured question or note.

    Attributes:
        id: Opaque identifier, stable for the item's lifetime.
        text: Captured content, never blank.
        categories: Tag names, non-empty and without duplicates.
        description: Free-text annotation (at most 200 characters).
        images: Blob references (at most 4).
        status: Resolution status.
        created_at: Creation time (timezone-aware).
    """

    id: str
    text: str
    categories: list[str]
    created_at: datetime
    description: str = ""
    images: list[str] = field(default_factory=list)
    status: ItemStatus = ItemStatus.UNSOLVED

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.text.strip():
            raise ValueError("Item text cannot be empty")
        if not self.categories:
            raise ValueError("Item must have at least one category")
        if len(set(self.categories)) != len(self.categories):
            raise ValueError("Item categories must not contain duplicates")
        if len(self.images) > MAX_IMAGES:
            raise ValueError(f"Maximum {MAX_IMAGES} images allowed per item")
        if len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(
                f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )

    @property
    def is_solved(self) -> bool:
        return self.status is ItemStatus.SOLVED

    def has_any_tag(self, tags: Iterable[str]) -> bool:
        """Whether the item carries at least one of the given tags."""
        return not set(self.categories).isdisjoint(tags)


def dedupe(values: Iterable[str]) -> list[str]:
    """Drop duplicates while keeping first-seen order."""
    return list(dict.fromkeys(values))


def categories_or_misc(categories: Iterable[str]) -> list[str]:
    """Deduplicate categories and fall back to the misc tag when empty."""
    result = dedupe(c for c in categories if c)
    return result or [MISC_TAG]


def truncate_description(description: str | None) -> str:
    """Cut a description down to the maximum length."""
    if not description:
        return ""
    return description[:MAX_DESCRIPTION_LENGTH]


def parse_created_at(value: Any) -> datetime | None:
    """Parse a stored creation timestamp.

    Accepts ISO strings (with a trailing "Z" or an offset), datetimes, and
    epoch milliseconds. Naive values are treated as UTC.

    Returns:
        A timezone-aware datetime, or None when the value is unusable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def item_from_record(
    record: Mapping[str, Any], fallback_id: str | None = None
) -> Item | None:
    """Build an Item from a stored record of any schema version.

    Older records carry a singular ``category`` and a ``summary`` field
    instead of ``categories`` and ``description``; both are mapped here so
    that nothing downstream has to care.

    Args:
        record: Raw record from local storage or a remote snapshot.
        fallback_id: Identifier to use when the record has none (remote
            documents keep their id outside the body).

    Returns:
        The normalised Item, or None for records that cannot be salvaged.
    """
    item_id = record.get("id") or fallback_id
    text = record.get("text")
    if not item_id or not isinstance(text, str) or not text.strip():
        logger.warning("Skipping malformed item record: id=%r", item_id)
        return None

    raw_categories = record.get("categories")
    if isinstance(raw_categories, list):
        categories = [str(c) for c in raw_categories if isinstance(c, str)]
    elif isinstance(record.get("category"), str):
        categories = [record["category"]]
    else:
        categories = []

    description = record.get("description")
    if description is None:
        description = record.get("summary")
    if not isinstance(description, str):
        description = ""

    raw_images = record.get("images")
    images = (
        [ref for ref in raw_images if isinstance(ref, str)][:MAX_IMAGES]
        if isinstance(raw_images, list)
        else []
    )

    try:
        status = ItemStatus(record.get("status", ItemStatus.UNSOLVED.value))
    except ValueError:
        status = ItemStatus.UNSOLVED

    created_at = parse_created_at(record.get("createdAt")) or datetime.now(
        timezone.utc
    )

    return Item(
        id=str(item_id),
        text=text,
        categories=categories_or_misc(categories),
        description=truncate_description(description),
        images=images,
        status=status,
        created_at=created_at,
    )


def item_to_record(item: Item, include_id: bool = True) -> dict[str, Any]:
    """Serialise an Item to its JSON-ready stored form."""
    record: dict[str, Any] = {
        "v": SCHEMA_VERSION,
        "text": item.text,
        "categories": list(item.categories),
        "description": item.description,
        "images": list(item.images),
        "status": item.status.value,
        "createdAt": item.created_at.isoformat(),
    }
    if include_id:
        record = {"id": item.id, **record}
    return record
