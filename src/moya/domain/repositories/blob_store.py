"""BlobStore Protocol."""

from typing import Protocol


class BlobStore(Protocol):
    """Storage for image payloads referenced by items."""

    async def put(self, data: bytes, content_type: str) -> str:
        """Store a blob.

        Returns:
            Reference to store on the item.
        """
        ...

    async def get(self, ref: str) -> tuple[bytes, str] | None:
        """Load a blob and its content type, or None when unknown."""
        ...
