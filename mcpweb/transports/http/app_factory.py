import weakref
from typing import TYPE_CHECKING

from aiohttp import WSCloseCode, web

from mcpweb.logging import McpWebLogger

from .middleware import MIDDLEWARE_STACK
from .routes import register_all_routes

if TYPE_CHECKING:
    from mcpweb.manager import SessionManager


async def _close_websockets(app: web.Application) -> None:
    for ws in set(app["websockets"]):
        await ws.close(
            code=WSCloseCode.GOING_AWAY,
            message=b"Server shutdown",
        )


async def _shutdown_manager(app: web.Application) -> None:
    await app["manager"].shutdown()
    app["manager"].hub.close()


def create_http_application(
    manager: "SessionManager",
    logger: McpWebLogger | None = None,
) -> web.Application:
    app = web.Application(middlewares=MIDDLEWARE_STACK)

    app["manager"] = manager
    app["metrics"] = manager.metrics
    app["websockets"] = weakref.WeakSet()

    if logger:
        app["logger"] = logger

    register_all_routes(app)

    app.on_shutdown.append(_close_websockets)
    app.on_shutdown.append(_shutdown_manager)

    return app
