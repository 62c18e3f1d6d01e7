"""Domain service protocols."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from moya.domain.entities import Subscription, UserIdentity
from moya.domain.entities.notification import NotificationLevel

IdentityListener = Callable[[UserIdentity | None], Awaitable[None]]


class AuthGateway(Protocol):
    """Identity provider abstraction.

    Wraps whichever provider issues user identities. Listeners receive the
    current identity on subscription and on every change afterwards.
    """

    @property
    def current_user(self) -> UserIdentity | None:
        """Currently signed-in identity, or None for guests."""
        ...

    async def sign_in(self, identity: UserIdentity) -> UserIdentity:
        """Complete an interactive sign-in.

        Args:
            identity: Identity asserted by the provider's sign-in flow.

        Returns:
            The signed-in identity.
        """
        ...

    async def sign_out(self) -> None:
        """Sign the current user out."""
        ...

    async def subscribe(self, listener: IdentityListener) -> Subscription:
        """Register an identity-change listener.

        The listener is awaited once with the current identity before this
        method returns.

        Args:
            listener: Async callback receiving the identity (or None).

        Returns:
            Subscription handle.
        """
        ...


class MigrationPrompt(Protocol):
    """Asks the user whether guest items should be imported."""

    async def confirm_import(self, item_count: int) -> bool:
        """Ask for confirmation.

        Args:
            item_count: Number of guest items that would be imported.

        Returns:
            True to import, False to discard guest items.
        """
        ...


class Notifier(Protocol):
    """Surfaces messages to the user."""

    def notify(
        self,
        level: NotificationLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        ...
