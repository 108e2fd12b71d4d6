from .handshake import (
    ALLOWED_TRANSITIONS,
    HandshakeStateMachine,
    build_initialize_params,
)
from .interpreter import build_spawn_args, select_interpreter
from .mcp_session import McpSession, ProcessSpawner

__all__ = [
    "McpSession",
    "ProcessSpawner",
    "HandshakeStateMachine",
    "ALLOWED_TRANSITIONS",
    "build_initialize_params",
    "build_spawn_args",
    "select_interpreter",
]
