from aiohttp import web


async def handle_list_tools(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    request_id = await manager.list_tools(request.match_info["session_id"])
    return web.json_response({"success": True, "requestId": request_id})


async def handle_list_resources(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    request_id = await manager.list_resources(request.match_info["session_id"])
    return web.json_response({"success": True, "requestId": request_id})


async def handle_call_tool(request: web.Request) -> web.Response:
    manager = request.app["manager"]
    data = await request.json()

    if not isinstance(data, dict) or not isinstance(data.get("toolName"), str):
        return web.json_response(
            {"success": False, "error": "Missing required field: toolName"},
            status=400,
        )

    args = data.get("args")
    if args is not None and not isinstance(args, dict):
        return web.json_response(
            {"success": False, "error": "'args' must be an object"},
            status=400,
        )

    request_id = await manager.call_tool(
        request.match_info["session_id"],
        data["toolName"],
        args,
    )
    return web.json_response({"success": True, "requestId": request_id})
