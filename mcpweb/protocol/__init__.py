from .codec import (
    INITIALIZE_METHOD,
    INITIALIZE_REQUEST_ID,
    INITIALIZED_NOTIFICATION,
    RESOURCES_LIST,
    TOOLS_CALL,
    TOOLS_LIST,
    JsonRpcCodec,
    RequestIdGenerator,
)
from .line_reader import LineReassembler, iter_lines

__all__ = [
    "JsonRpcCodec",
    "RequestIdGenerator",
    "LineReassembler",
    "iter_lines",
    "INITIALIZE_REQUEST_ID",
    "INITIALIZE_METHOD",
    "INITIALIZED_NOTIFICATION",
    "TOOLS_LIST",
    "TOOLS_CALL",
    "RESOURCES_LIST",
]
