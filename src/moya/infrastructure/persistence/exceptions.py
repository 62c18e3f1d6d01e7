"""Persistence-related exceptions."""


class PersistenceError(Exception):
    """Base exception for persistence-related errors."""


class DocumentNotFoundError(PersistenceError):
    """A document targeted by an update does not exist."""

    def __init__(self, doc_id: str) -> None:
        self.doc_id = doc_id
        super().__init__(f"Document {doc_id} not found")
