"""Use cases."""

from moya.application.use_cases.capture_item import (
    EXTENSION_MESSAGE_TYPES,
    CaptureBridge,
    parse_capture_query,
    parse_extension_message,
)

__all__ = [
    "EXTENSION_MESSAGE_TYPES",
    "CaptureBridge",
    "parse_capture_query",
    "parse_extension_message",
]
