"""
Status HTTP Server

Read-only aiohttp endpoints exposing the controller status:
- /health - liveness, uptime, tick count
- /state  - last tick state
"""

from datetime import datetime, timezone
from typing import Callable

from aiohttp import web

from lapatronic.common.logging_setup import get_service_logger

logger = get_service_logger("control.status")


class StatusServer:
    """Serves status snapshots produced by the control loop"""

    def __init__(
        self,
        get_status: Callable[[], dict],
        get_state: Callable[[], dict],
        port: int,
        host: str = "127.0.0.1",
    ):
        self._get_status = get_status
        self._get_state = get_state
        self.host = host
        self.port = port
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/state", self._state_handler)
        return app

    async def start(self) -> None:
        """Start the status HTTP server"""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(f"Status server started on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the status HTTP server"""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        status = self._get_status()
        return web.json_response({
            "status": "healthy" if status.get("running") else "unhealthy",
            "service": "control",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **status,
        })

    async def _state_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self._get_state())
