from collections import Counter

from aiohttp import web

from mcpweb import __version__


async def handle_health(
    request: web.Request,
) -> web.Response:
    manager = request.app["manager"]

    states = Counter(
        session.state.value
        for session in manager.sessions()
    )

    return web.json_response(
        {
            "status": "healthy",
            "version": __version__,
            "sessions": len(manager),
            "sessions_by_state": dict(states),
            "subscribers": manager.hub.subscriber_count,
            "uptime_seconds": manager.metrics.uptime_seconds,
        }
    )
