"""User-visible notification entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class NotificationLevel(Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A message surfaced to the user.

    Attributes:
        level: Severity.
        message: Human-readable text.
        details: Extra data the client can act on (e.g. text to retry).
        created_at: Creation time.
    """

    level: NotificationLevel
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "details": self.details,
            "createdAt": self.created_at.isoformat(),
        }
