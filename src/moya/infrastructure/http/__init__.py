"""HTTP infrastructure."""

from moya.infrastructure.http.server import MoyaServer

__all__ = ["MoyaServer"]
