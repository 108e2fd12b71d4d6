from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from mcpweb.exceptions import InvalidStateTransition
from mcpweb.protocol.codec import INITIALIZE_REQUEST_ID
from mcpweb.types import ClientIdentity, Response, SessionState

TransitionCallback = Callable[
    [SessionState, SessionState, Optional[str]], None
]

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.CONNECTING: frozenset(
        {
            SessionState.AWAITING_INIT_RESULT,
            SessionState.FAILED,
            SessionState.CLOSED,
        }
    ),
    SessionState.AWAITING_INIT_RESULT: frozenset(
        {
            SessionState.AWAITING_INITIALIZED_ACK,
            SessionState.FAILED,
            SessionState.CLOSED,
        }
    ),
    SessionState.AWAITING_INITIALIZED_ACK: frozenset(
        {
            SessionState.READY,
            SessionState.FAILED,
            SessionState.CLOSED,
        }
    ),
    SessionState.READY: frozenset(
        {SessionState.FAILED, SessionState.CLOSED}
    ),
    SessionState.FAILED: frozenset(),
    SessionState.CLOSED: frozenset(),
}


def build_initialize_params(
    identity: ClientIdentity, protocol_version: str
) -> dict[str, Any]:
    return {
        "protocolVersion": protocol_version,
        "capabilities": {
            "tools": {},
            "resources": {},
        },
        "clientInfo": identity.to_dict(),
    }


class HandshakeStateMachine:
    """
    Drives one session from spawn to ready-for-requests.

    The machine holds no I/O. The owning session reports events
    (initialize written, init response seen, notification flushed,
    failure, exit) and the machine decides the transition. Every
    transition is reported through ``on_transition``.

    Once FAILED or CLOSED, further events are ignored.
    """

    def __init__(
        self,
        session_id: str,
        on_transition: Optional[TransitionCallback] = None,
    ) -> None:
        self.session_id: str = session_id
        self._state: SessionState = SessionState.CONNECTING
        self._failure: Optional[BaseException] = None
        self._settled: asyncio.Event = asyncio.Event()
        self._on_transition = on_transition

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def is_settled(self) -> bool:
        return self._settled.is_set()

    # =========================================================================
    # EVENTS
    # =========================================================================

    def initialize_sent(self) -> bool:
        return self.transition(
            SessionState.AWAITING_INIT_RESULT
        )

    def matches_init_response(
        self, response: Response
    ) -> bool:
        return (
            self._state is SessionState.AWAITING_INIT_RESULT
            and response.id == INITIALIZE_REQUEST_ID
        )

    def init_result_received(self) -> bool:
        """
        Record a successful init result.

        Returns True exactly once per session: the caller must then send
        ``notifications/initialized``.
        """
        if self._state is not SessionState.AWAITING_INIT_RESULT:
            return False
        return self.transition(
            SessionState.AWAITING_INITIALIZED_ACK
        )

    def initialized_flushed(self) -> bool:
        if (
            self._state
            is not SessionState.AWAITING_INITIALIZED_ACK
        ):
            return False
        return self.transition(SessionState.READY)

    def fail(self, error: BaseException) -> bool:
        if self._state.is_terminal:
            return False
        self._failure = error
        return self.transition(
            SessionState.FAILED, reason=str(error)
        )

    def close(self, reason: Optional[str] = None) -> bool:
        return self.transition(
            SessionState.CLOSED, reason=reason
        )

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def transition(
        self,
        target: SessionState,
        reason: Optional[str] = None,
    ) -> bool:
        previous = self._state
        if previous.is_terminal:
            return False
        if target not in ALLOWED_TRANSITIONS[previous]:
            raise InvalidStateTransition(
                self.session_id, previous, target
            )

        self._state = target
        if target is SessionState.READY or target.is_terminal:
            self._settled.set()

        if self._on_transition is not None:
            self._on_transition(previous, target, reason)
        return True

    async def wait_settled(
        self, timeout: Optional[float] = None
    ) -> SessionState:
        """
        Wait until the session is READY or terminal.

        Raises ``asyncio.TimeoutError`` when ``timeout`` elapses first.
        """
        await asyncio.wait_for(
            self._settled.wait(), timeout
        )
        return self._state
