"""Per-user settings entity."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TagSortOrder(Enum):
    """How the tag list is ordered."""

    USAGE = "usage"
    RECENT = "recent"
    ALPHABETICAL = "alphabetical"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Settings:
    """Tag-related user settings.

    Attributes:
        categories: Known tag names in discovery order.
        tag_colors: Explicit color overrides (tag -> color string).
        custom_tag_order: User-defined tag permutation.
        tag_sort_order: Active tag ordering.
    """

    categories: list[str] = field(default_factory=list)
    tag_colors: dict[str, str] = field(default_factory=dict)
    custom_tag_order: list[str] = field(default_factory=list)
    tag_sort_order: TagSortOrder = TagSortOrder.USAGE


# Settings document field names
CATEGORIES_FIELD = "categories"
TAG_COLORS_FIELD = "tagColors"
CUSTOM_TAG_ORDER_FIELD = "customTagOrder"
TAG_SORT_ORDER_FIELD = "tagSortOrder"


def settings_from_document(
    document: dict[str, Any] | None, default_categories: list[str]
) -> Settings:
    """Build Settings from a (possibly partial) settings document."""
    document = document or {}

    categories = document.get(CATEGORIES_FIELD)
    if not isinstance(categories, list):
        categories = list(default_categories)

    tag_colors = document.get(TAG_COLORS_FIELD)
    if not isinstance(tag_colors, dict):
        tag_colors = {}

    custom_order = document.get(CUSTOM_TAG_ORDER_FIELD)
    if not isinstance(custom_order, list):
        custom_order = []

    try:
        sort_order = TagSortOrder(document.get(TAG_SORT_ORDER_FIELD, "usage"))
    except ValueError:
        sort_order = TagSortOrder.USAGE

    return Settings(
        categories=[c for c in categories if isinstance(c, str)],
        tag_colors={
            str(k): v for k, v in tag_colors.items() if isinstance(v, str)
        },
        custom_tag_order=[t for t in custom_order if isinstance(t, str)],
        tag_sort_order=sort_order,
    )


def settings_to_document(settings: Settings) -> dict[str, Any]:
    return {
        CATEGORIES_FIELD: list(settings.categories),
        TAG_COLORS_FIELD: dict(settings.tag_colors),
        CUSTOM_TAG_ORDER_FIELD: list(settings.custom_tag_order),
        TAG_SORT_ORDER_FIELD: settings.tag_sort_order.value,
    }
