"""HTTP server hosting the capture and list endpoints."""

from __future__ import annotations

import logging
from collections.abc import Callable

from aiohttp import web

from moya.presentation import error_middleware

logger = logging.getLogger(__name__)

RouteRegistrar = Callable[[web.Application], None]


class MoyaServer:
    """aiohttp server for the app's HTTP surface.

    Routes are added by a registrar callback so the server itself stays
    unaware of the handlers.
    """

    def __init__(
        self,
        register: RouteRegistrar,
        host: str = "127.0.0.1",
        port: int = 5174,
    ) -> None:
        """Initialize the server.

        Args:
            register: Callback that adds routes to the application.
            host: Interface to bind.
            port: Port to listen on. Use 0 for any available port.
        """
        self._register = register
        self._host = host
        self._port = port
        self._actual_port = port
        self._server: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> int:
        """Get the port the server is listening on."""
        return self._actual_port

    def create_app(self) -> web.Application:
        app = web.Application(middlewares=[error_middleware])
        self._register(app)
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._server = web.AppRunner(self.create_app())
        await self._server.setup()

        self._site = web.TCPSite(self._server, self._host, self._port)
        await self._site.start()

        # Get actual port (useful when port=0 for dynamic allocation)
        if self._site._server is not None:
            sockets = self._site._server.sockets  # type: ignore[union-attr]
            if sockets:
                self._actual_port = sockets[0].getsockname()[1]

        self._running = True
        logger.info("Server started on http://%s:%d", self._host, self.port)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._server is not None:
            await self._server.cleanup()
            self._server = None
            self._site = None

        self._running = False
        logger.info("Server stopped")
