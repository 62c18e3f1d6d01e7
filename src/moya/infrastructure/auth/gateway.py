"""In-process auth gateway."""

import asyncio
import json
import logging
from pathlib import Path

from moya.domain.entities import Subscription, UserIdentity
from moya.domain.services.protocols import IdentityListener

logger = logging.getLogger(__name__)


class LocalAuthGateway:
    """Identity gateway for a single-user deployment.

    The sign-in flow runs on the client; this gateway records the asserted
    identity and fans changes out to listeners. When a session path is
    given the identity survives restarts, like a provider's persisted
    session.
    """

    def __init__(self, session_path: str | Path | None = None) -> None:
        """Initialise.

        Args:
            session_path: JSON file holding the signed-in identity, or None
                to keep the session in memory.
        """
        self._session_path = Path(session_path) if session_path else None
        self._current: UserIdentity | None = None
        self._listeners: list[IdentityListener] = []
        self._restored = False

    @property
    def current_user(self) -> UserIdentity | None:
        return self._current

    async def restore(self) -> UserIdentity | None:
        """Load the persisted identity, if any. Runs once."""
        if self._restored:
            return self._current
        self._restored = True
        if self._session_path is None:
            return None

        path = self._session_path

        def read() -> str | None:
            return path.read_text(encoding="utf-8") if path.exists() else None

        raw = await asyncio.to_thread(read)
        if raw is None:
            return None
        try:
            self._current = UserIdentity.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValueError, AttributeError):
            logger.warning("Ignoring unreadable session file %s", path)
            self._current = None
        else:
            logger.info("Restored session for user %s", self._current.id)
        return self._current

    async def sign_in(self, identity: UserIdentity) -> UserIdentity:
        await self.restore()
        self._current = identity
        await self._persist()
        logger.info("User %s signed in", identity.id)
        await self._notify()
        return identity

    async def sign_out(self) -> None:
        await self.restore()
        if self._current is None:
            return
        user_id = self._current.id
        self._current = None
        await self._persist()
        logger.info("User %s signed out", user_id)
        await self._notify()

    async def subscribe(self, listener: IdentityListener) -> Subscription:
        await self.restore()
        self._listeners.append(listener)
        await listener(self._current)
        return Subscription(lambda: self._remove(listener))

    def _remove(self, listener: IdentityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                await listener(self._current)
            except Exception:
                logger.exception("Identity listener raised")

    async def _persist(self) -> None:
        if self._session_path is None:
            return
        path = self._session_path
        current = self._current

        def write() -> None:
            if current is None:
                path.unlink(missing_ok=True)
                return
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(current.to_dict(), ensure_ascii=False), encoding="utf-8"
            )

        await asyncio.to_thread(write)
