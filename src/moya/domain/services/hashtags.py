"""Hashtag extraction and text segmentation."""

import re
from dataclasses import dataclass
from enum import Enum

# \w on str patterns is Unicode-aware, so Hangul and other scripts match
HASHTAG_PATTERN = re.compile(r"#(\w+)")
URL_PATTERN = re.compile(r"https?://[^\s<>\"']+")


class SegmentKind(Enum):
    TEXT = "text"
    HASHTAG = "hashtag"
    LINK = "link"


@dataclass(frozen=True)
class TextSegment:
    kind: SegmentKind
    value: str


def extract_hashtags(text: str) -> list[str]:
    """Extract hashtag names from text.

    Args:
        text: Text to scan.

    Returns:
        Tag names without the leading '#', deduplicated in first-seen order.
    """
    if not text:
        return []
    return list(dict.fromkeys(HASHTAG_PATTERN.findall(text)))


def _split(text: str, pattern: re.Pattern[str], kind: SegmentKind) -> list[TextSegment]:
    segments: list[TextSegment] = []
    last_index = 0
    for match in pattern.finditer(text):
        if match.start() > last_index:
            segments.append(
                TextSegment(SegmentKind.TEXT, text[last_index : match.start()])
            )
        segments.append(TextSegment(kind, match.group(0)))
        last_index = match.end()
    if last_index < len(text):
        segments.append(TextSegment(SegmentKind.TEXT, text[last_index:]))
    return segments


def split_hashtags(text: str) -> list[TextSegment]:
    """Split text into plain and hashtag segments for highlighting."""
    if not text:
        return []
    return _split(text, HASHTAG_PATTERN, SegmentKind.HASHTAG)


def split_links(text: str) -> list[TextSegment]:
    """Split a description into plain text and bare URL segments."""
    if not text:
        return []
    return _split(text, URL_PATTERN, SegmentKind.LINK)
