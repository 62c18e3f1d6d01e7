"""Tag list discovery and ordering."""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from moya.domain.entities.item import Item
from moya.domain.entities.settings import TagSortOrder


def known_tags(categories: Iterable[str], items: Iterable[Item]) -> list[str]:
    """All tags in discovery order: the stored list first, then item tags."""
    tags = dict.fromkeys(categories)
    for item in items:
        tags.update(dict.fromkeys(item.categories))
    return list(tags)


def usage_counts(items: Iterable[Item]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for item in items:
        counts.update(item.categories)
    return counts


def last_used(items: Iterable[Item]) -> dict[str, datetime]:
    latest: dict[str, datetime] = {}
    for item in items:
        for tag in item.categories:
            if tag not in latest or item.created_at > latest[tag]:
                latest[tag] = item.created_at
    return latest


def sort_tags(
    tags: list[str],
    items: list[Item],
    order: TagSortOrder,
    custom_order: list[str] | None = None,
) -> list[str]:
    """Order tags for display.

    Ties keep discovery order. Under CUSTOM ordering, tags missing from the
    custom permutation are appended in discovery order.

    Args:
        tags: Tags in discovery order.
        items: Items used for usage and recency statistics.
        order: Requested ordering.
        custom_order: User-defined permutation for CUSTOM ordering.

    Returns:
        A new ordered list.
    """
    if order is TagSortOrder.USAGE:
        counts = usage_counts(items)
        return sorted(tags, key=lambda tag: -counts[tag])

    if order is TagSortOrder.RECENT:
        latest = last_used(items)
        used = sorted(
            (tag for tag in tags if tag in latest),
            key=lambda tag: latest[tag],
            reverse=True,
        )
        return used + [tag for tag in tags if tag not in latest]

    if order is TagSortOrder.ALPHABETICAL:
        return sorted(tags, key=lambda tag: (tag.casefold(), tag))

    present = set(tags)
    head = [tag for tag in dict.fromkeys(custom_order or []) if tag in present]
    placed = set(head)
    return head + [tag for tag in tags if tag not in placed]
