"""Client-side item filtering and grouping."""

from collections.abc import Iterable
from datetime import date, tzinfo

from moya.domain.entities.filter import (
    FilterCriteria,
    GroupBy,
    ItemGroup,
    StatusFilter,
)
from moya.domain.entities.item import Item, ItemStatus

ALL_GROUP_KEY = "all"


def local_date(item: Item, tz: tzinfo | None = None) -> date:
    """Calendar date of an item's creation in the given (or local) zone."""
    return item.created_at.astimezone(tz).date()


def _matches_search(item: Item, query: str) -> bool:
    if not query:
        return True
    needle = query.lower()
    return needle in item.text.lower() or needle in item.description.lower()


def _matches_status(item: Item, status: StatusFilter) -> bool:
    if status is StatusFilter.ALL:
        return True
    return item.status.value == status.value


def matches(item: Item, criteria: FilterCriteria, tz: tzinfo | None = None) -> bool:
    """Whether an item passes every predicate of the criteria."""
    if not _matches_search(item, criteria.search_query):
        return False
    if not _matches_status(item, criteria.status):
        return False
    if criteria.selected_tags and not item.has_any_tag(criteria.selected_tags):
        return False
    if criteria.selected_date is not None:
        return local_date(item, tz) == criteria.selected_date
    return True


def select_items(
    items: Iterable[Item], criteria: FilterCriteria, tz: tzinfo | None = None
) -> list[Item]:
    return [item for item in items if matches(item, criteria, tz)]


def select_and_group(
    items: Iterable[Item], criteria: FilterCriteria, tz: tzinfo | None = None
) -> list[ItemGroup]:
    """Filter items and group them for display.

    Input order is preserved within every group.

    Args:
        items: Items in store order (newest first).
        criteria: Filter and grouping criteria.
        tz: Zone for calendar dates. None uses the local zone.

    Returns:
        Ordered groups. GroupBy.NONE yields a single group keyed "all";
        GroupBy.DATE yields ISO-date keys, newest day first; GroupBy.STATUS
        yields "unsolved" then "solved", omitting empty buckets.
    """
    selected = select_items(items, criteria, tz)

    if criteria.group_by is GroupBy.NONE:
        return [ItemGroup(key=ALL_GROUP_KEY, items=selected)]

    if criteria.group_by is GroupBy.DATE:
        by_date: dict[date, list[Item]] = {}
        for item in selected:
            by_date.setdefault(local_date(item, tz), []).append(item)
        return [
            ItemGroup(key=day.isoformat(), items=by_date[day])
            for day in sorted(by_date, reverse=True)
        ]

    groups = []
    for status in (ItemStatus.UNSOLVED, ItemStatus.SOLVED):
        bucket = [item for item in selected if item.status is status]
        if bucket:
            groups.append(ItemGroup(key=status.value, items=bucket))
    return groups
