"""
API Server - aiohttp-based REST server for the study timer.

Runs on the same event loop as the presence component, so handlers call
straight into it without locking.
"""

from typing import Optional

from aiohttp import web

from study_presence.core.logging_utils import get_module_logger

from .controller import PresenceAPIController
from .middleware import (
    error_handling_middleware,
    localhost_only_middleware,
    request_logging_middleware,
)
from .routes import setup_routes


logger = get_module_logger("APIServer")


def create_app(controller: PresenceAPIController, *, localhost_only: bool = True) -> web.Application:
    """Create and configure the aiohttp application."""
    # localhost check -> request logging -> error handling
    middlewares = [request_logging_middleware, error_handling_middleware]
    if localhost_only:
        middlewares.insert(0, localhost_only_middleware)

    app = web.Application(middlewares=middlewares)
    app["controller"] = controller
    setup_routes(app)
    return app


class APIServer:
    """Starts and stops the REST API alongside the component."""

    def __init__(
        self,
        controller: PresenceAPIController,
        host: str = "127.0.0.1",
        port: int = 8765,
        localhost_only: bool = True,
    ):
        self.controller = controller
        self.host = host
        self.port = port
        self.localhost_only = localhost_only

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    async def start(self) -> None:
        """Start the API server (non-blocking)."""
        if self._runner is not None:
            logger.warning("API server already running")
            return

        app = create_app(self.controller, localhost_only=self.localhost_only)
        self._runner = web.AppRunner(app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("API server started on %s", self.url)

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if self._runner is None:
            return

        if self._site:
            await self._site.stop()
            self._site = None

        await self._runner.cleanup()
        self._runner = None
        logger.info("API server stopped")

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


__all__ = ["APIServer", "create_app"]
