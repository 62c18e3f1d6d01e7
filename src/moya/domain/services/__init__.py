"""Domain services."""

from moya.domain.services.hashtags import (
    SegmentKind,
    TextSegment,
    extract_hashtags,
    split_hashtags,
    split_links,
)
from moya.domain.services.item_filter import matches, select_and_group
from moya.domain.services.protocols import AuthGateway, MigrationPrompt, Notifier
from moya.domain.services.tag_colors import TAG_PALETTE, color_for, colors_for
from moya.domain.services.tag_ordering import known_tags, sort_tags

__all__ = [
    "TAG_PALETTE",
    "AuthGateway",
    "MigrationPrompt",
    "Notifier",
    "SegmentKind",
    "TextSegment",
    "color_for",
    "colors_for",
    "extract_hashtags",
    "known_tags",
    "matches",
    "select_and_group",
    "sort_tags",
    "split_hashtags",
    "split_links",
]
