"""Capture payload entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

SOURCE_LINK_PREFIX = "출처: "


@dataclass(frozen=True)
class CapturePayload:
    """Text captured from outside the app, waiting to become an item.

    Attributes:
        text: Captured text (hashtags included).
        source_url: Page the text came from, if known.
        key: Unique key that makes submission exactly-once.
        received_at: Time the capture arrived.
    """

    text: str
    source_url: str | None = None
    key: str = field(default_factory=lambda: uuid4().hex)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def seed_description(self) -> str | None:
        """Description seeded with a source link line, if a URL is known."""
        if not self.source_url:
            return None
        return f"{SOURCE_LINK_PREFIX}{self.source_url}"
