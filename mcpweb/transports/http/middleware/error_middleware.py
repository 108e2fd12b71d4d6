import json

from aiohttp import web
from aiohttp.web import middleware

from mcpweb.exceptions import McpWebError


def _error_response(message: str, status: int, error_type: str) -> web.Response:
    return web.json_response(
        {"success": False, "error": message, "type": error_type},
        status=status,
    )


@middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except json.JSONDecodeError as e:
        return _error_response(f"Invalid JSON: {e}", 400, "InvalidJSON")
    except McpWebError as e:
        if "metrics" in request.app:
            request.app["metrics"].record_error()
        return _error_response(str(e), e.http_status, type(e).__name__)
    except Exception as e:
        if "metrics" in request.app:
            request.app["metrics"].record_error()
        if "logger" in request.app:
            request.app["logger"].error(f"Unhandled error: {e}", exc_info=True)
        return _error_response(
            "Internal server error", 500, type(e).__name__
        )
