"""Filter criteria and grouped results."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum

from moya.domain.entities.item import Item


class StatusFilter(Enum):
    ALL = "all"
    SOLVED = "solved"
    UNSOLVED = "unsolved"


class GroupBy(Enum):
    NONE = "none"
    DATE = "date"
    STATUS = "status"


@dataclass(frozen=True)
class FilterCriteria:
    """Criteria for selecting displayed items.

    Attributes:
        search_query: Case-insensitive substring over text or description.
        status: Status filter.
        selected_tags: Items matching any of these tags pass (empty = all).
        selected_date: Local calendar date to match, if any.
        group_by: Grouping applied to the filtered items.
    """

    search_query: str = ""
    status: StatusFilter = StatusFilter.ALL
    selected_tags: tuple[str, ...] = ()
    selected_date: date | None = None
    group_by: GroupBy = GroupBy.NONE

    def without_tag(self, tag: str) -> "FilterCriteria":
        """Drop a tag from the selection (empty selection means all)."""
        return replace(
            self, selected_tags=tuple(t for t in self.selected_tags if t != tag)
        )


@dataclass(frozen=True)
class ItemGroup:
    """A labelled group of items in display order."""

    key: str
    items: list[Item] = field(default_factory=list)
