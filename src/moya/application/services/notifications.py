"""Notification and prompt adapters for headless clients."""

import logging
from collections import deque
from typing import Any

from moya.domain.entities import Notification, NotificationLevel

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Keeps recent notifications until a client drains them."""

    def __init__(self, max_size: int = 100) -> None:
        self._notifications: deque[Notification] = deque(maxlen=max_size)

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        notification = Notification(level=level, message=message, details=details or {})
        self._notifications.append(notification)
        logger.debug("Notification queued: [%s] %s", level.value, message)

    def pending(self) -> list[Notification]:
        return list(self._notifications)

    def drain(self) -> list[Notification]:
        """Return and forget every queued notification."""
        drained = list(self._notifications)
        self._notifications.clear()
        return drained


class StaticMigrationPrompt:
    """Answers the guest import prompt with a configured decision."""

    def __init__(self, confirm: bool = True) -> None:
        self._confirm = confirm

    async def confirm_import(self, item_count: int) -> bool:
        logger.info(
            "Guest data import of %d item(s) %s by configuration",
            item_count,
            "accepted" if self._confirm else "declined",
        )
        return self._confirm
