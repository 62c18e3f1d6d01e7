"""Auth infrastructure."""

from moya.infrastructure.auth.gateway import LocalAuthGateway

__all__ = ["LocalAuthGateway"]
