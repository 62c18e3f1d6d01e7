"""Configuration dataclasses."""

from dataclasses import dataclass, field

DEFAULT_CATEGORIES = ["HTML", "CSS", "React", "수학", "알고리즘"]


@dataclass
class StorageConfig:
    """Local storage settings.

    Attributes:
        database_path: SQLite file backing local storage (":memory:" allowed).
        blob_dir: Directory for content-addressed image blobs.
    """

    database_path: str
    blob_dir: str = "data/blobs"


@dataclass
class RemoteConfig:
    """Remote document store settings."""

    database_path: str
    timeout_seconds: float = 10.0


@dataclass
class AuthConfig:
    """Auth gateway settings.

    Attributes:
        session_path: JSON file where the signed-in identity is kept
            across restarts. None keeps the session in memory only.
    """

    session_path: str | None = None


@dataclass
class ServerConfig:
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 5174
    highlight_seconds: float = 3.0


@dataclass
class MigrationConfig:
    """Guest data import settings."""

    auto_confirm: bool = True


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    loggers: dict[str, str] | None = None


@dataclass
class Config:
    """Application settings."""

    storage: StorageConfig
    app_id: str = "moya-list-local"
    timezone: str | None = None
    remote: RemoteConfig | None = None
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    default_categories: list[str] = field(
        default_factory=lambda: list(DEFAULT_CATEGORIES)
    )
    logging: LoggingConfig | None = None
