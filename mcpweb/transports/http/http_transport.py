import asyncio
from typing import TYPE_CHECKING

from aiohttp import web

from mcpweb.logging import McpWebLogger, setup_logging

from .app_factory import create_http_application

if TYPE_CHECKING:
    from mcpweb.manager import SessionManager


class HTTPTransport:
    """
    Serves the control API and the ``/ws`` subscriber stream.

    Stopping the transport runs the application's shutdown hooks, which
    close every WebSocket and terminate every server session.
    """

    def __init__(
        self,
        manager: "SessionManager",
        host: str = "0.0.0.0",
        port: int = 3000,
        mcpweb_logger: McpWebLogger | None = None,
    ):
        self._manager = manager
        self._host = host
        self._port = port
        self._logger = mcpweb_logger
        self._runner: web.AppRunner | None = None
        self._stop_requested: asyncio.Event | None = None

    @property
    def manager(self) -> "SessionManager":
        return self._manager

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    def run(self) -> None:
        asyncio.run(self._run_until_stopped())

    async def start(self) -> None:
        if self._runner is not None:
            return
        if self._logger is None:
            self._logger = setup_logging()

        runner = web.AppRunner(
            create_http_application(self._manager, self._logger)
        )
        await runner.setup()
        await web.TCPSite(runner, self._host, self._port).start()

        self._runner = runner
        self._logger.server_started(self.address)

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is None:
            return
        await runner.cleanup()
        self._logger.server_stopped()

    def request_stop(self) -> None:
        if self._stop_requested is not None:
            self._stop_requested.set()

    async def _run_until_stopped(self) -> None:
        self._stop_requested = asyncio.Event()
        await self.start()
        try:
            await self._stop_requested.wait()
        finally:
            await self.stop()
