from __future__ import annotations

import itertools
import json
from typing import Any, Optional

from mcpweb.types import (
    InboundMessage,
    JsonValue,
    Malformed,
    Notification,
    RequestId,
    Response,
)

JSONRPC_VERSION = "2.0"

INITIALIZE_REQUEST_ID = 1
INITIALIZE_METHOD = "initialize"
INITIALIZED_NOTIFICATION = "notifications/initialized"

TOOLS_LIST = "tools/list"
TOOLS_CALL = "tools/call"
RESOURCES_LIST = "resources/list"


class RequestIdGenerator:
    """
    Per-session source of request ids.

    Ids increase monotonically and never collide with the fixed
    ``initialize`` id, so every response correlates unambiguously.
    """

    def __init__(
        self, start: int = INITIALIZE_REQUEST_ID + 1
    ) -> None:
        if start <= INITIALIZE_REQUEST_ID:
            raise ValueError(
                f"Request ids must start above {INITIALIZE_REQUEST_ID}"
            )
        self._counter = itertools.count(start)

    def next_id(self) -> int:
        return next(self._counter)


class JsonRpcCodec:
    def encode_request(
        self,
        request_id: RequestId,
        method: str,
        params: JsonValue = None,
    ) -> str:
        message: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "method": method,
        }
        if params is not None:
            message["params"] = params
        return self._to_line(message)

    def encode_notification(
        self, method: str, params: JsonValue = None
    ) -> str:
        message: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
        }
        if params is not None:
            message["params"] = params
        return self._to_line(message)

    def decode(self, line: str) -> InboundMessage:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            return Malformed(raw_text=line, reason=f"Invalid JSON: {e}")

        if not isinstance(data, dict):
            return Malformed(
                raw_text=line,
                reason=f"Expected a JSON object, got {type(data).__name__}",
            )

        if "result" in data or "error" in data:
            return self._decode_response(line, data)

        method = data.get("method")
        if isinstance(method, str):
            return Notification(
                method=method,
                params=data.get("params"),
                id=data.get("id"),
                raw=data,
            )

        return Malformed(
            raw_text=line,
            reason="Object is neither a response nor a notification",
        )

    def _decode_response(
        self, line: str, data: dict[str, Any]
    ) -> InboundMessage:
        error: Optional[Any] = data.get("error")
        if error is not None and not isinstance(error, dict):
            return Malformed(
                raw_text=line,
                reason="Response 'error' must be an object",
            )

        return Response(
            id=data.get("id"),
            result=data.get("result"),
            error=error,
            raw=data,
        )

    def _to_line(self, message: dict[str, Any]) -> str:
        return json.dumps(message, separators=(",", ":")) + "\n"
