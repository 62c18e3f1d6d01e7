"""Presentation layer."""

from moya.presentation.http_handlers import (
    error_middleware,
    parse_filter_criteria,
    register_routes,
)

__all__ = ["error_middleware", "parse_filter_criteria", "register_routes"]
