"""
mcpweb - MCP Web Client

Discover and invoke the tools and resources of MCP servers from a
browser, with every server response relayed live over WebSocket.

Quick Start - Session Manager:

    from mcpweb import SessionManager

    async with SessionManager() as manager:
        subscription = manager.hub.subscribe()

        session_id = await manager.connect("./weather_server.py")
        await manager.wait_until_ready(session_id)
        await manager.list_tools(session_id)

        async for envelope in subscription:
            print(envelope.to_dict())

CLI:

    mcpweb serve                     # HTTP API on :3000, WebSocket on /ws
    mcpweb probe ./server.py -r      # List tools and resources of one server
    mcpweb info                      # Show configuration
"""

__version__ = "0.1.0"

from .broadcast import BroadcastHub, Subscription
from .config import ClientConfig
from .exceptions import (
    DecodeFailure,
    HandshakeRejected,
    HandshakeTimeout,
    InvalidConfiguration,
    InvalidStateTransition,
    McpWebError,
    NotInitialized,
    ProcessExited,
    SessionNotFound,
    SpawnFailure,
)
from .logging import McpWebLogger, get_logger, setup_logging
from .manager import SessionManager
from .protocol import JsonRpcCodec, LineReassembler
from .session import HandshakeStateMachine, McpSession
from .types import (
    BroadcastEnvelope,
    ClientIdentity,
    EnvelopeType,
    JsonValue,
    Malformed,
    Notification,
    Response,
    SessionState,
)

__all__ = [
    "__version__",
    # Core
    "SessionManager",
    "McpSession",
    "HandshakeStateMachine",
    "BroadcastHub",
    "Subscription",
    "ClientConfig",
    # Protocol
    "JsonRpcCodec",
    "LineReassembler",
    "Response",
    "Notification",
    "Malformed",
    "JsonValue",
    "SessionState",
    "BroadcastEnvelope",
    "EnvelopeType",
    "ClientIdentity",
    # Exceptions
    "McpWebError",
    "SessionNotFound",
    "NotInitialized",
    "SpawnFailure",
    "HandshakeTimeout",
    "HandshakeRejected",
    "ProcessExited",
    "DecodeFailure",
    "InvalidStateTransition",
    "InvalidConfiguration",
    # Logging
    "setup_logging",
    "get_logger",
    "McpWebLogger",
]
