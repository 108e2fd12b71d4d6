from aiohttp import web

from mcpweb.metrics import export_metrics_to_prometheus


async def handle_metrics(request: web.Request) -> web.Response:
    manager = request.app["manager"]

    return web.Response(
        text=export_metrics_to_prometheus(
            manager.metrics,
            active_sessions=len(manager),
            subscribers=manager.hub.subscriber_count,
        ),
        content_type="text/plain; version=0.0.4",
    )
