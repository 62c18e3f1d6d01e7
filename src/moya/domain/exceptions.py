"""Domain exceptions."""


class ItemNotFoundError(Exception):
    """Raised when an operation targets an item that does not exist."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class SessionNotReadyError(Exception):
    """Raised when an operation arrives before the session is resolved.

    Item operations are only accepted in guest or authenticated state.
    """

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"Session is not ready (state: {state})")


class RemoteOperationError(Exception):
    """A remote store or auth gateway call failed or timed out."""

    def __init__(self, operation: str, message: str = "") -> None:
        self.operation = operation
        super().__init__(message or f"Remote operation '{operation}' failed")


class TagNotFoundError(Exception):
    """Raised when a tag operation targets an unknown tag."""

    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(f"Tag '{tag}' not found")


class BackendNotConfiguredError(Exception):
    """Raised for account operations when no remote backend is configured."""

    def __init__(self) -> None:
        super().__init__("No remote backend is configured; running in guest mode")


class SessionChangeError(Exception):
    """Raised when signing in could not be completed.

    The session has fallen back to guest state when this is raised.
    """

    def __init__(self, user_id: str, message: str = "") -> None:
        self.user_id = user_id
        super().__init__(message or f"Could not open the session for user {user_id}")
