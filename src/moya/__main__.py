"""Application entry point."""

import asyncio
import logging
import signal
import sys
from datetime import tzinfo
from functools import partial
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from moya.application.services import (
    Configured,
    ItemStore,
    NotificationCenter,
    RemoteBackend,
    StaticMigrationPrompt,
    SyncController,
    Unconfigured,
)
from moya.application.use_cases import CaptureBridge
from moya.config import Config, ConfigError, LoggingConfig, load_config
from moya.infrastructure.auth import LocalAuthGateway
from moya.infrastructure.http import MoyaServer
from moya.infrastructure.persistence import (
    LOCAL_TABLES,
    REMOTE_TABLES,
    DatabaseManager,
    FileBlobStore,
    KeyValueLocalPersistence,
    SQLiteDocumentStore,
    SQLiteKeyValueStore,
)
from moya.presentation import register_routes

# Default logging for early startup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def configure_logging(config: LoggingConfig | None) -> None:
    """Configure logging based on config.

    Args:
        config: Logging configuration. If None, uses defaults.
    """
    if config is None:
        return

    root_logger = logging.getLogger()
    level = getattr(logging, config.level.upper(), logging.INFO)
    root_logger.setLevel(level)

    if root_logger.handlers:
        formatter = logging.Formatter(config.format)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)

    if config.loggers:
        for logger_name, logger_level in config.loggers.items():
            individual_logger = logging.getLogger(logger_name)
            individual_level = getattr(logging, logger_level.upper(), logging.INFO)
            individual_logger.setLevel(individual_level)
            logger.debug(
                "Set logger '%s' to level %s", logger_name, logger_level.upper()
            )


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Resolve the configured zone; None means the system local zone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone '%s'; using local time", name)
        return None


async def build_backend(config: Config) -> tuple[RemoteBackend, DatabaseManager | None]:
    """Build the remote backend described by the config."""
    if config.remote is None:
        return Unconfigured(), None

    remote_db = DatabaseManager(config.remote.database_path)
    await remote_db.create_tables(REMOTE_TABLES)
    store = SQLiteDocumentStore(remote_db.get_session, app_id=config.app_id)
    auth = LocalAuthGateway(config.auth.session_path)
    return Configured(store=store, auth=auth), remote_db


async def main() -> None:
    """Start the application."""
    config_path = Path("config.yaml")
    if not config_path.exists():
        logger.error("config.yaml not found")
        sys.exit(1)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    configure_logging(config.logging)

    # Local storage
    local_db = DatabaseManager(config.storage.database_path)
    await local_db.create_tables(LOCAL_TABLES)
    local = KeyValueLocalPersistence(SQLiteKeyValueStore(local_db.get_session))
    blob_store = FileBlobStore(config.storage.blob_dir)

    backend, remote_db = await build_backend(config)

    notifications = NotificationCenter()
    controller = SyncController(
        local=local,
        backend=backend,
        item_store=ItemStore(),
        notifier=notifications,
        migration_prompt=StaticMigrationPrompt(config.migration.auto_confirm),
        blob_store=blob_store,
        default_categories=config.default_categories,
        remote_timeout=config.remote.timeout_seconds if config.remote else 10.0,
        highlight_seconds=config.server.highlight_seconds,
    )
    bridge = CaptureBridge(controller)

    server = MoyaServer(
        partial(
            register_routes,
            controller=controller,
            bridge=bridge,
            notifications=notifications,
            blob_store=blob_store,
            tz=resolve_timezone(config.timezone),
        ),
        host=config.server.host,
        port=config.server.port,
    )

    await controller.start()
    await server.start()
    logger.info("Moya List running (%s)", controller.state.value)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Received shutdown signal...")
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, shutdown_handler)
    loop.add_signal_handler(signal.SIGTERM, shutdown_handler)

    await stop_event.wait()

    logger.info("Shutting down...")
    await server.stop()
    await controller.stop()
    await local_db.close()
    if remote_db is not None:
        await remote_db.close()
    logger.info("Shutdown complete")


def run() -> None:
    """Run the async main function."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    run()
