#!/usr/bin/env python3
"""Database viewer script for moya.

CLI for inspecting local storage and the remote document store.

Usage:
    python hack/db_viewer.py stats
    python hack/db_viewer.py local
    python hack/db_viewer.py items
    python hack/db_viewer.py documents [--user USER] [--limit N]
    python hack/db_viewer.py settings [--user USER]
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from sqlalchemy import desc, func
from sqlmodel import select

# Make the src/ layout importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from moya.config.loader import load_config  # noqa: E402
from moya.infrastructure.persistence.database import DatabaseManager  # noqa: E402
from moya.infrastructure.persistence.key_value_store import (  # noqa: E402
    SQLiteKeyValueStore,
)
from moya.infrastructure.persistence.local_persistence import (  # noqa: E402
    KeyValueLocalPersistence,
)
from moya.infrastructure.persistence.models import (  # noqa: E402
    ItemDocumentModel,
    KeyValueModel,
    SettingsDocumentModel,
)


def load_dotenv(env_path: Path) -> None:
    """Read KEY=VALUE lines from a .env file into os.environ.

    Existing variables are left alone so the shell can override the file.
    """
    if not env_path.exists():
        return

    with open(env_path, encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key, value = key.strip(), value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            os.environ.setdefault(key, value)


class TableFormatter:
    """Plain-text table formatter."""

    def __init__(self, max_width: int = 50) -> None:
        self._max_width = max_width

    def truncate(self, text: str, width: int | None = None) -> str:
        width = width or self._max_width
        if len(text) <= width:
            return text
        return text[: width - 3] + "..."

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: str | None = None,
    ) -> None:
        if title:
            print(f"\n=== {title} ===\n")

        if not rows:
            print("(no data)")
            return

        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(str(cell)))

        header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
        separator = "-+-".join("-" * w for w in widths)
        print(header_line)
        print(separator)

        for row in rows:
            line = " | ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row))
            print(line)

        print(f"\nTotal: {len(rows)} records")


class DatabaseViewer:
    """Reads both databases."""

    def __init__(
        self, local_db: DatabaseManager, remote_db: DatabaseManager | None
    ) -> None:
        self._local_db = local_db
        self._remote_db = remote_db
        self._formatter = TableFormatter()

    @property
    def formatter(self) -> TableFormatter:
        return self._formatter

    async def get_stats(self) -> dict[str, int]:
        stats: dict[str, int] = {}
        async with self._local_db.get_session() as session:
            result = await session.exec(select(func.count()).select_from(KeyValueModel))
            stats["local_storage"] = result.one()

        if self._remote_db is not None:
            async with self._remote_db.get_session() as session:
                for name, model in (
                    ("item_documents", ItemDocumentModel),
                    ("settings_documents", SettingsDocumentModel),
                ):
                    result = await session.exec(select(func.count()).select_from(model))
                    stats[name] = result.one()
        return stats

    async def list_local(self) -> list[dict[str, Any]]:
        async with self._local_db.get_session() as session:
            result = await session.exec(select(KeyValueModel).order_by(KeyValueModel.key))
            rows = result.all()
        return [
            {
                "key": row.key,
                "value": row.value,
                "updated_at": row.updated_at.isoformat() if row.updated_at else None,
            }
            for row in rows
        ]

    async def list_guest_items(self) -> list[dict[str, Any]]:
        local = KeyValueLocalPersistence(SQLiteKeyValueStore(self._local_db.get_session))
        items = await local.load_items()
        return [
            {
                "id": item.id,
                "status": item.status.value,
                "categories": item.categories,
                "text": item.text,
                "created_at": item.created_at.isoformat(),
            }
            for item in items
        ]

    async def list_documents(
        self, user_id: str | None = None, limit: int = 20
    ) -> list[dict[str, Any]]:
        if self._remote_db is None:
            return []
        async with self._remote_db.get_session() as session:
            stmt = select(ItemDocumentModel).order_by(
                desc(ItemDocumentModel.created_at)  # type: ignore[arg-type]
            )
            if user_id:
                stmt = stmt.where(ItemDocumentModel.user_id == user_id)
            result = await session.exec(stmt.limit(limit))
            rows = result.all()
        return [
            {
                "doc_id": row.doc_id,
                "app_id": row.app_id,
                "user_id": row.user_id,
                "body": json.loads(row.body),
                "created_at": row.created_at.isoformat(),
            }
            for row in rows
        ]

    async def list_settings(self, user_id: str | None = None) -> list[dict[str, Any]]:
        if self._remote_db is None:
            return []
        async with self._remote_db.get_session() as session:
            stmt = select(SettingsDocumentModel).order_by(SettingsDocumentModel.user_id)
            if user_id:
                stmt = stmt.where(SettingsDocumentModel.user_id == user_id)
            result = await session.exec(stmt)
            rows = result.all()
        return [
            {"app_id": row.app_id, "user_id": row.user_id, "body": json.loads(row.body)}
            for row in rows
        ]


def print_records(
    viewer: DatabaseViewer,
    records: list[dict[str, Any]],
    output_format: str,
    title: str,
) -> None:
    if output_format == "json":
        print(json.dumps(records, ensure_ascii=False, indent=2))
        return
    if not records:
        viewer.formatter.print_table([], [], title=title)
        return
    headers = list(records[0].keys())
    rows = [
        [
            viewer.formatter.truncate(
                value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
            )
            for value in record.values()
        ]
        for record in records
    ]
    viewer.formatter.print_table(headers, rows, title=title)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="moya database viewer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to config.yaml (default: config.yaml)",
    )
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )

    subparsers = parser.add_subparsers(dest="command", help="command")
    subparsers.add_parser("stats", help="Show row counts")
    subparsers.add_parser("local", help="Show local storage keys")
    subparsers.add_parser("items", help="Show guest items")

    documents_parser = subparsers.add_parser("documents", help="Show item documents")
    documents_parser.add_argument("--user", help="Filter by user id")
    documents_parser.add_argument(
        "--limit", type=int, default=20, help="Rows to show (default: 20)"
    )

    settings_parser = subparsers.add_parser("settings", help="Show settings documents")
    settings_parser.add_argument("--user", help="Filter by user id")

    return parser


async def main() -> None:
    load_dotenv(Path(__file__).parent.parent / ".env")

    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)
    config = load_config(config_path)

    local_db = DatabaseManager(config.storage.database_path)
    remote_db = (
        DatabaseManager(config.remote.database_path) if config.remote else None
    )
    viewer = DatabaseViewer(local_db, remote_db)

    try:
        if args.command == "stats":
            stats = await viewer.get_stats()
            print_records(
                viewer,
                [{"table": k, "rows": v} for k, v in stats.items()],
                args.format,
                "Stats",
            )
        elif args.command == "local":
            print_records(viewer, await viewer.list_local(), args.format, "Local Storage")
        elif args.command == "items":
            print_records(
                viewer, await viewer.list_guest_items(), args.format, "Guest Items"
            )
        elif args.command == "documents":
            documents = await viewer.list_documents(user_id=args.user, limit=args.limit)
            print_records(viewer, documents, args.format, "Item Documents")
        elif args.command == "settings":
            settings = await viewer.list_settings(user_id=args.user)
            print_records(viewer, settings, args.format, "Settings Documents")
    finally:
        await local_db.close()
        if remote_db is not None:
            await remote_db.close()


if __name__ == "__main__":
    asyncio.run(main())
