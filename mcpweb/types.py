"""
MCP Web Client - Core Types

Design Philosophy:
- Payloads defined by MCP servers (tool schemas, arguments, results) stay
  opaque JSON values and are passed through untouched
- Only the envelope fields the session manager inspects are typed
- Every inbound frame decodes to exactly one of Response, Notification
  or Malformed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

JsonValue = Union[
    None,
    bool,
    int,
    float,
    str,
    list["JsonValue"],
    dict[str, "JsonValue"],
]

RequestId = Union[int, str]


# =============================================================================
# SESSION STATE
# =============================================================================


class SessionState(str, Enum):
    """
    Lifecycle of a single MCP server session.

    States only move forward. FAILED and CLOSED are terminal.
    """

    CONNECTING = "connecting"
    AWAITING_INIT_RESULT = "awaiting_init_result"
    AWAITING_INITIALIZED_ACK = (
        "awaiting_initialized_ack"
    )
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionState.FAILED,
            SessionState.CLOSED,
        )


# =============================================================================
# INBOUND MESSAGES
# =============================================================================


@dataclass
class Response:
    """A JSON-RPC response: ``id`` plus ``result`` or ``error``."""

    id: Optional[RequestId]
    result: JsonValue = None
    error: Optional[dict[str, Any]] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass
class Notification:
    """
    A message carrying a ``method``.

    Server-initiated requests keep their ``id``; they are relayed to
    viewers but never answered by the client.
    """

    method: str
    params: JsonValue = None
    id: Optional[RequestId] = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class Malformed:
    """A frame that could not be decoded; keeps the offending text."""

    raw_text: str
    reason: str


InboundMessage = Union[Response, Notification, Malformed]


# =============================================================================
# BROADCAST
# =============================================================================


class EnvelopeType(str, Enum):
    SERVER_RESPONSE = "serverResponse"
    DIAGNOSTIC = "diagnostic"
    SESSION_STATE = "sessionState"


@dataclass
class BroadcastEnvelope:
    """One fan-out event, tagged with its originating session."""

    session_id: str
    payload: dict[str, Any]
    type: EnvelopeType = EnvelopeType.SERVER_RESPONSE

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "sessionId": self.session_id,
            "payload": self.payload,
        }


# =============================================================================
# CLIENT IDENTITY
# =============================================================================


@dataclass
class ClientIdentity:
    """Static identity announced in the ``initialize`` request."""

    name: str = "mcp-web-client"
    version: str = "1.0.0"

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "version": self.version,
        }
