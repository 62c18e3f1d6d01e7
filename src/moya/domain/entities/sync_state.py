"""Synchronisation state of a client session."""

from enum import Enum


class SyncState(Enum):
    """Where reads and writes are currently routed.

    UNINITIALIZED and AUTH_PENDING are transient; only GUEST and
    AUTHENTICATED accept item operations.
    """

    UNINITIALIZED = "uninitialized"
    GUEST = "guest"
    AUTH_PENDING = "auth_pending"
    AUTHENTICATED = "authenticated"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncState.GUEST, SyncState.AUTHENTICATED)
