"""Subscription handle returned by change-notification sources."""

from collections.abc import Callable


class Subscription:
    """Handle for tearing down a listener registration.

    ``unsubscribe`` is idempotent; the teardown callback runs at most once.
    """

    def __init__(self, teardown: Callable[[], None]) -> None:
        self._teardown: Callable[[], None] | None = teardown

    @property
    def active(self) -> bool:
        return self._teardown is not None

    def unsubscribe(self) -> None:
        if self._teardown is None:
            return
        teardown, self._teardown = self._teardown, None
        teardown()
