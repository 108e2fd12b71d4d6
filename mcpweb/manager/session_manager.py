from __future__ import annotations

import asyncio
import uuid
from typing import Any, Optional

from mcpweb.broadcast import BroadcastHub
from mcpweb.config import ClientConfig
from mcpweb.exceptions import (
    DecodeFailure,
    SessionNotFound,
    SpawnFailure,
)
from mcpweb.logging import get_logger
from mcpweb.metrics import ManagerMetrics
from mcpweb.protocol.codec import (
    RESOURCES_LIST,
    TOOLS_CALL,
    TOOLS_LIST,
    JsonRpcCodec,
)
from mcpweb.protocol.line_reader import RawLine
from mcpweb.session import McpSession, ProcessSpawner
from mcpweb.types import (
    BroadcastEnvelope,
    EnvelopeType,
    JsonValue,
    Malformed,
    RequestId,
    SessionState,
)

logger = get_logger("manager")


class SessionManager:
    """
    Registry of MCP server sessions and the control API over them.

    One manager is built at startup and handed to the HTTP layer and the
    subscriber transport. Commands are fire-and-forget: they return once
    the request is written, and the server's answer reaches viewers
    through the broadcast hub.

    Usage:
        async with SessionManager() as manager:
            session_id = await manager.connect("./server.py")
            await manager.wait_until_ready(session_id)
            await manager.list_tools(session_id)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        hub: Optional[BroadcastHub] = None,
        spawner: Optional[ProcessSpawner] = None,
        metrics: Optional[ManagerMetrics] = None,
    ) -> None:
        self.config: ClientConfig = config or ClientConfig()
        self.hub: BroadcastHub = hub or BroadcastHub(
            self.config.subscriber_queue_size
        )
        self.metrics: ManagerMetrics = (
            metrics or ManagerMetrics()
        )
        self._spawner: ProcessSpawner = (
            spawner or asyncio.create_subprocess_exec
        )
        self._codec: JsonRpcCodec = JsonRpcCodec()
        self._sessions: dict[str, McpSession] = {}

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    # =========================================================================
    # CONTROL API
    # =========================================================================

    async def connect(self, server_path: str) -> str:
        """
        Spawn a server and start its handshake.

        Returns the new session id as soon as ``initialize`` is written;
        use ``wait_until_ready`` or the ``sessionState`` broadcasts to
        learn when the session accepts commands.
        """
        session_id = self._new_session_id()
        session = McpSession(
            session_id,
            server_path,
            self.config,
            spawner=self._spawner,
            line_handler=self.on_line,
            on_state_change=self._on_state_change,
        )

        self._sessions[session_id] = session
        try:
            await session.start()
        except SpawnFailure:
            del self._sessions[session_id]
            raise

        self.metrics.record_session_started()
        return session_id

    async def list_tools(self, session_id: str) -> RequestId:
        return await self._send(session_id, TOOLS_LIST)

    async def list_resources(
        self, session_id: str
    ) -> RequestId:
        return await self._send(session_id, RESOURCES_LIST)

    async def call_tool(
        self,
        session_id: str,
        tool_name: str,
        arguments: Optional[dict[str, JsonValue]] = None,
    ) -> RequestId:
        return await self._send(
            session_id,
            TOOLS_CALL,
            {
                "name": tool_name,
                "arguments": (
                    arguments if arguments is not None else {}
                ),
            },
        )

    async def wait_until_ready(
        self,
        session_id: str,
        timeout: Optional[float] = None,
    ) -> McpSession:
        session = self.get_session(session_id)
        await session.wait_until_ready(timeout)
        return session

    async def disconnect(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        await session.close()

    async def shutdown(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        await asyncio.gather(
            *(session.close() for session in sessions),
            return_exceptions=True,
        )
        if sessions:
            logger.info(
                f"Shut down {len(sessions)} server session(s)"
            )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_session(self, session_id: str) -> McpSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def sessions(self) -> list[McpSession]:
        return list(self._sessions.values())

    def describe(self, session_id: str) -> dict[str, Any]:
        return self.get_session(session_id).describe()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # =========================================================================
    # INBOUND
    # =========================================================================

    async def on_line(
        self, session_id: str, raw_line: RawLine
    ) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug(
                f"Dropping frame for unknown session {session_id}"
            )
            return

        if isinstance(raw_line, Malformed):
            message = raw_line
        else:
            message = self._codec.decode(raw_line)
        is_malformed = isinstance(message, Malformed)
        self.metrics.record_frame(malformed=is_malformed)

        if is_malformed:
            failure = DecodeFailure(message.raw_text, message.reason)
            logger.frame_malformed(
                session_id, message.reason, message.raw_text
            )
            self._publish(
                session_id,
                {
                    "error": type(failure).__name__,
                    "detail": str(failure),
                    "raw": message.raw_text,
                },
                EnvelopeType.DIAGNOSTIC,
            )
            return

        # A response is relayed before any state change it causes
        self._publish(
            session_id,
            message.raw,
            EnvelopeType.SERVER_RESPONSE,
        )
        await session.handle_message(message)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _send(
        self,
        session_id: str,
        method: str,
        params: JsonValue = None,
    ) -> RequestId:
        session = self.get_session(session_id)
        request_id = await session.send_request(method, params)
        self.metrics.record_command(method)
        return request_id

    def _on_state_change(
        self,
        session: McpSession,
        previous: SessionState,
        current: SessionState,
        reason: Optional[str],
    ) -> None:
        payload: dict[str, Any] = {
            "state": current.value,
            "previous": previous.value,
        }
        if reason:
            payload["reason"] = reason

        if current is SessionState.READY:
            logger.handshake_completed(
                session.id, session.server_name
            )
            payload["serverInfo"] = session.server_info
        if current is SessionState.FAILED:
            self.metrics.record_session_failed()

        envelope_type = (
            EnvelopeType.DIAGNOSTIC
            if current.is_terminal
            else EnvelopeType.SESSION_STATE
        )
        self._publish(session.id, payload, envelope_type)

    def _publish(
        self,
        session_id: str,
        payload: dict[str, Any],
        envelope_type: EnvelopeType,
    ) -> None:
        self.hub.broadcast(
            BroadcastEnvelope(
                session_id=session_id,
                payload=payload,
                type=envelope_type,
            )
        )
        self.metrics.record_broadcast()

    def _new_session_id(self) -> str:
        while True:
            session_id = f"server_{uuid.uuid4().hex[:12]}"
            if session_id not in self._sessions:
                return session_id
