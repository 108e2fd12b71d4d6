from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mcpweb.types import SessionState


class McpWebError(Exception):
    """Base class for every error raised by the session manager."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id: Optional[str] = session_id
        super().__init__(message)


class SessionNotFound(McpWebError):

    http_status = 404

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Server not connected: {session_id}",
            session_id,
        )


class NotInitialized(McpWebError):

    http_status = 409

    def __init__(
        self, session_id: str, state: SessionState
    ) -> None:
        self.state: SessionState = state
        super().__init__(
            f"Server {session_id} not initialized yet "
            f"(state: {state.value})",
            session_id,
        )


class SpawnFailure(McpWebError):

    http_status = 502

    def __init__(
        self,
        session_id: str,
        argv: list[str],
        cause: BaseException,
    ) -> None:
        self.argv: list[str] = argv
        super().__init__(
            f"Failed to start {' '.join(argv)}: {cause}",
            session_id,
        )


class HandshakeTimeout(McpWebError):

    http_status = 504

    def __init__(
        self, session_id: str, timeout: float
    ) -> None:
        self.timeout: float = timeout
        super().__init__(
            f"Server {session_id} did not complete the "
            f"handshake within {timeout:g}s",
            session_id,
        )


class HandshakeRejected(McpWebError):

    http_status = 502

    def __init__(
        self, session_id: str, error: dict
    ) -> None:
        self.error: dict = error
        detail = error.get("message") or error
        super().__init__(
            f"Server {session_id} rejected initialize: {detail}",
            session_id,
        )


class ProcessExited(McpWebError):

    http_status = 502

    def __init__(
        self,
        session_id: str,
        returncode: Optional[int],
    ) -> None:
        self.returncode: Optional[int] = returncode
        super().__init__(
            f"Server {session_id} exited "
            f"(code {returncode})",
            session_id,
        )


class DecodeFailure(McpWebError):

    http_status = 400

    def __init__(
        self, raw_text: str, reason: str
    ) -> None:
        self.raw_text: str = raw_text
        self.reason: str = reason
        super().__init__(
            f"Malformed frame: {reason}"
        )


class InvalidStateTransition(McpWebError):

    def __init__(
        self,
        session_id: str,
        current: SessionState,
        target: SessionState,
    ) -> None:
        self.current: SessionState = current
        self.target: SessionState = target
        super().__init__(
            f"Session {session_id} cannot move from "
            f"{current.value} to {target.value}",
            session_id,
        )


class InvalidConfiguration(McpWebError, ValueError):

    def __init__(self, env_name: str, raw: str) -> None:
        self.env_name: str = env_name
        self.raw: str = raw
        super().__init__(
            f"Invalid value for {env_name}: {raw!r}"
        )
