"""YAML config loading with environment variable expansion."""

import os
import re
from pathlib import Path
from typing import Any

import yaml

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


class ConfigError(Exception):
    """Base class for configuration errors."""


class ConfigValidationError(ConfigError):
    """A configuration value is missing or invalid."""


class EnvironmentVariableError(ConfigError):
    """A referenced environment variable is not set."""


# ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} references with environment values.

    Args:
        value: String to expand.

    Returns:
        The expanded string.

    Raises:
        EnvironmentVariableError: A referenced variable is not set.
    """
    if not value:
        return value

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise EnvironmentVariableError(
                f"Environment variable '{var_name}' is not set"
            )
        return env_value

    return ENV_VAR_PATTERN.sub(replace_var, value)


def _expand_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _expand_recursive(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _validate_required_field(data: dict[str, Any], field: str, parent: str = "") -> Any:
    """Return a required field or raise.

    Raises:
        ConfigValidationError: The field is absent or null.
    """
    if field not in data or data[field] is None:
        full_path = f"{parent}.{field}" if parent else field
        raise ConfigValidationError(f"Required field '{full_path}' is missing")
    return data[field]


def _positive_number(value: Any, path: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
        raise ConfigValidationError(f"'{path}' must be a positive number")
    return float(value)


def load_config(path: str | Path) -> Config:
    """Load the config file.

    Args:
        path: Path to config.yaml.

    Returns:
        Config object.

    Raises:
        FileNotFoundError: The file does not exist.
        ConfigValidationError: A required value is missing or invalid.
        EnvironmentVariableError: A referenced variable is not set.
        yaml.YAMLError: The file is not valid YAML.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f) or {}

    if not isinstance(raw_data, dict):
        raise ConfigValidationError("Config root must be a mapping")

    data = _expand_recursive(raw_data)

    storage_data = _validate_required_field(data, "storage")
    storage = StorageConfig(
        database_path=_validate_required_field(
            storage_data, "database_path", "storage"
        ),
        blob_dir=storage_data.get("blob_dir", "data/blobs"),
    )

    # Remote store is optional; without it the app runs guest-only
    remote: RemoteConfig | None = None
    remote_data = data.get("remote")
    if remote_data:
        remote = RemoteConfig(
            database_path=_validate_required_field(
                remote_data, "database_path", "remote"
            ),
            timeout_seconds=_positive_number(
                remote_data.get("timeout_seconds", 10.0), "remote.timeout_seconds"
            ),
        )

    auth_data = data.get("auth") or {}
    auth = AuthConfig(session_path=auth_data.get("session_path"))

    server_data = data.get("server") or {}
    server = ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=server_data.get("port", 5174),
        highlight_seconds=server_data.get("highlight_seconds", 3.0),
    )

    migration_data = data.get("migration") or {}
    migration = MigrationConfig(
        auto_confirm=bool(migration_data.get("auto_confirm", True))
    )

    default_categories = data.get("default_categories", DEFAULT_CATEGORIES)
    if not isinstance(default_categories, list) or not all(
        isinstance(name, str) and name for name in default_categories
    ):
        raise ConfigValidationError(
            "'default_categories' must be a list of non-empty strings"
        )

    logging_config: LoggingConfig | None = None
    logging_data = data.get("logging")
    if logging_data:
        logging_config = LoggingConfig(
            level=logging_data.get("level", "INFO"),
            format=logging_data.get(
                "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            ),
            loggers=logging_data.get("loggers"),
        )

    return Config(
        storage=storage,
        app_id=data.get("app_id", "moya-list-local"),
        timezone=data.get("timezone"),
        remote=remote,
        auth=auth,
        server=server,
        migration=migration,
        default_categories=list(default_categories),
        logging=logging_config,
    )
