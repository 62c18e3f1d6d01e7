"""Capture bridge: feeds externally captured text into the sync controller."""

import logging
from collections.abc import Mapping
from typing import Any

from moya.application.services.sync_controller import SyncController
from moya.domain.entities import CapturePayload

logger = logging.getLogger(__name__)

EXTENSION_MESSAGE_TYPES = frozenset({"ADD_TEXT", "MOYA_ADD_TEXT"})


def parse_capture_query(query: Mapping[str, str]) -> CapturePayload | None:
    """Build a capture from ``text`` / ``url`` query parameters.

    Args:
        query: Decoded query parameters of the capture URL.

    Returns:
        The payload, or None when no usable ``text`` is present.
    """
    text = query.get("text")
    if not text or not text.strip():
        return None
    url = query.get("url") or None
    return CapturePayload(text=text, source_url=url)


def parse_extension_message(message: Any) -> CapturePayload | None:
    """Build a capture from a browser-extension message.

    Only ``{"type": "ADD_TEXT" | "MOYA_ADD_TEXT", "text": str}`` is
    recognised; anything else yields None.
    """
    if not isinstance(message, Mapping):
        return None
    if message.get("type") not in EXTENSION_MESSAGE_TYPES:
        return None
    text = message.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    url = message.get("url")
    return CapturePayload(text=text, source_url=url if isinstance(url, str) else None)


class CaptureBridge:
    """Entry point for captures arriving from outside the app.

    Captures come from the capture URL (``/?text=...&url=...``) or from
    messages relayed by the browser extension. Both are submitted through
    the sync controller, which holds them until the session is ready.
    """

    def __init__(self, controller: SyncController) -> None:
        """Initialize the bridge.

        Args:
            controller: Controller that owns the write path.
        """
        self._controller = controller

    async def ingest_query(self, query: Mapping[str, str]) -> CapturePayload | None:
        """Ingest capture URL parameters.

        Returns:
            The accepted payload, or None when the query carried no text.

        Raises:
            RemoteOperationError: The cloud write failed.
        """
        payload = parse_capture_query(query)
        if payload is None:
            return None
        logger.info("Capture received from URL parameters")
        await self._controller.submit_capture(payload)
        return payload

    async def ingest_message(self, message: Any) -> CapturePayload | None:
        """Ingest an extension message; unrecognised messages are ignored.

        Returns:
            The accepted payload, or None when the message was ignored.

        Raises:
            RemoteOperationError: The cloud write failed.
        """
        payload = parse_extension_message(message)
        if payload is None:
            logger.debug("Ignoring unrecognised message")
            return None
        logger.info("Capture received from extension message")
        await self._controller.submit_capture(payload)
        return payload
