from aiohttp import web

from .command_routes import (
    handle_call_tool,
    handle_list_resources,
    handle_list_tools,
)
from .health_route import handle_health
from .metrics_route import handle_metrics
from .session_routes import (
    handle_connect,
    handle_delete_session,
    handle_get_session,
    handle_list_sessions,
)
from .websocket_route import handle_websocket


def register_all_routes(app: web.Application) -> None:
    app.router.add_post("/api/connect", handle_connect)
    app.router.add_post(
        "/api/tools/list/{session_id}", handle_list_tools
    )
    app.router.add_post(
        "/api/tools/call/{session_id}", handle_call_tool
    )
    app.router.add_post(
        "/api/resources/list/{session_id}",
        handle_list_resources,
    )
    app.router.add_get("/api/sessions", handle_list_sessions)
    app.router.add_get(
        "/api/sessions/{session_id}", handle_get_session
    )
    app.router.add_delete(
        "/api/sessions/{session_id}", handle_delete_session
    )
    app.router.add_get("/ws", handle_websocket)
    app.router.add_get("/health", handle_health)
    app.router.add_get("/metrics", handle_metrics)


__all__ = [
    "register_all_routes",
    "handle_connect",
    "handle_list_sessions",
    "handle_get_session",
    "handle_delete_session",
    "handle_list_tools",
    "handle_list_resources",
    "handle_call_tool",
    "handle_websocket",
    "handle_health",
    "handle_metrics",
]
