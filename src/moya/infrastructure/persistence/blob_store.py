"""Content-addressed file blob store."""

import asyncio
import hashlib
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

REF_PATTERN = re.compile(r"^[0-9a-f]{64}$")


class FileBlobStore:
    """Stores blobs as files named by their sha256 digest.

    Identical payloads share one file. The content type is kept in a
    sidecar file next to the data.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _paths(self, ref: str) -> tuple[Path, Path]:
        directory = self._root / ref[:2]
        return directory / ref, directory / f"{ref}.type"

    async def put(self, data: bytes, content_type: str) -> str:
        if not data:
            raise ValueError("Blob data cannot be empty")
        ref = hashlib.sha256(data).hexdigest()
        data_path, type_path = self._paths(ref)

        def write() -> None:
            data_path.parent.mkdir(parents=True, exist_ok=True)
            if not data_path.exists():
                data_path.write_bytes(data)
            type_path.write_text(content_type, encoding="utf-8")

        await asyncio.to_thread(write)
        logger.debug("Stored blob %s (%d bytes)", ref, len(data))
        return ref

    async def get(self, ref: str) -> tuple[bytes, str] | None:
        if not REF_PATTERN.match(ref):
            return None
        data_path, type_path = self._paths(ref)

        def read() -> tuple[bytes, str] | None:
            if not data_path.exists():
                return None
            content_type = (
                type_path.read_text(encoding="utf-8")
                if type_path.exists()
                else "application/octet-stream"
            )
            return data_path.read_bytes(), content_type

        return await asyncio.to_thread(read)
