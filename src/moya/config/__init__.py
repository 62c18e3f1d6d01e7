"""Configuration management."""

from moya.config.loader import (
    ConfigError,
    ConfigValidationError,
    EnvironmentVariableError,
    expand_env_vars,
    load_config,
)
from moya.config.models import (
    DEFAULT_CATEGORIES,
    AuthConfig,
    Config,
    LoggingConfig,
    MigrationConfig,
    RemoteConfig,
    ServerConfig,
    StorageConfig,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "AuthConfig",
    "Config",
    "ConfigError",
    "ConfigValidationError",
    "EnvironmentVariableError",
    "LoggingConfig",
    "MigrationConfig",
    "RemoteConfig",
    "ServerConfig",
    "StorageConfig",
    "expand_env_vars",
    "load_config",
]
