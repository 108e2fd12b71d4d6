from aiohttp import web


async def handle_connect(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    data = await request.json()

    server_path = data.get("serverPath") if isinstance(data, dict) else None
    if not isinstance(server_path, str) or not server_path.strip():
        return web.json_response(
            {"success": False, "error": "Missing required field: serverPath"},
            status=400,
        )

    session_id = await manager.connect(server_path.strip())
    return web.json_response({"success": True, "sessionId": session_id})


async def handle_list_sessions(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    return web.json_response(
        {"sessions": [session.describe() for session in manager.sessions()]}
    )


async def handle_get_session(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    return web.json_response(manager.describe(request.match_info["session_id"]))


async def handle_delete_session(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    await manager.disconnect(request.match_info["session_id"])
    return web.json_response({"success": True})
