from __future__ import annotations

import asyncio
import subprocess
from typing import Any, Awaitable, Callable, Optional

from mcpweb.config import ClientConfig
from mcpweb.exceptions import (
    HandshakeRejected,
    HandshakeTimeout,
    NotInitialized,
    ProcessExited,
    SpawnFailure,
)
from mcpweb.logging import get_logger
from mcpweb.protocol.codec import (
    INITIALIZE_METHOD,
    INITIALIZE_REQUEST_ID,
    INITIALIZED_NOTIFICATION,
    RESOURCES_LIST,
    TOOLS_LIST,
    JsonRpcCodec,
    RequestIdGenerator,
)
from mcpweb.protocol.line_reader import RawLine, iter_lines
from mcpweb.types import (
    InboundMessage,
    JsonValue,
    Malformed,
    RequestId,
    Response,
    SessionState,
)

from .handshake import (
    HandshakeStateMachine,
    build_initialize_params,
)
from .interpreter import build_spawn_args

logger = get_logger("session")

ProcessSpawner = Callable[..., Awaitable[Any]]
LineHandler = Callable[[str, RawLine], Awaitable[None]]
StateListener = Callable[
    ["McpSession", SessionState, SessionState, Optional[str]],
    None,
]

PIPE_ERRORS = (BrokenPipeError, ConnectionResetError)


class McpSession:
    """
    Live binding to one MCP server child process.

    The session owns the process for its whole life: it is spawned once
    by ``start`` and never replaced. Inbound lines are handed to
    ``line_handler`` strictly in arrival order by a single pump task;
    outbound frames are serialized by a per-session write lock.
    """

    def __init__(
        self,
        session_id: str,
        server_path: str,
        config: ClientConfig,
        spawner: ProcessSpawner,
        line_handler: LineHandler,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self.id: str = session_id
        self.server_path: str = server_path
        self.argv: list[str] = build_spawn_args(
            server_path, config
        )

        self.tools: list[JsonValue] = []
        self.resources: list[JsonValue] = []
        self.pending_request_id: Optional[RequestId] = None
        self.server_info: Optional[dict[str, Any]] = None
        self.server_capabilities: Optional[dict[str, Any]] = None
        self.protocol_version: Optional[str] = None
        self.returncode: Optional[int] = None

        self._config: ClientConfig = config
        self._spawner: ProcessSpawner = spawner
        self._line_handler: LineHandler = line_handler
        self._on_state_change = on_state_change

        self._codec: JsonRpcCodec = JsonRpcCodec()
        self._request_ids: RequestIdGenerator = (
            RequestIdGenerator()
        )
        self._pending_methods: dict[RequestId, str] = {}
        self._write_lock: asyncio.Lock = asyncio.Lock()
        self._handshake: HandshakeStateMachine = (
            HandshakeStateMachine(
                session_id,
                on_transition=self._handle_transition,
            )
        )
        self._process: Any = None
        self._tasks: list[asyncio.Future] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._handshake.state

    @property
    def failure(self) -> Optional[BaseException]:
        return self._handshake.failure

    @property
    def process(self) -> Any:
        return self._process

    @property
    def server_name(self) -> Optional[str]:
        if isinstance(self.server_info, dict):
            return self.server_info.get("name")
        return None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """
        Spawn the child and send ``initialize``.

        Returns once the request is written; readiness is reached later,
        driven by the child's response. Raises ``SpawnFailure`` if the
        process cannot be started.
        """
        if self._process is not None:
            raise RuntimeError(
                f"Session {self.id} has already been started"
            )

        try:
            self._process = await self._spawner(
                *self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            failure = SpawnFailure(self.id, self.argv, e)
            self._handshake.fail(failure)
            logger.session_failed(self.id, str(failure))
            raise failure from e

        logger.session_spawned(self.id, self.argv)
        self._spawn_task(self._enforce_handshake_deadline())

        initialize = self._codec.encode_request(
            INITIALIZE_REQUEST_ID,
            INITIALIZE_METHOD,
            build_initialize_params(
                self._config.client_identity,
                self._config.protocol_version,
            ),
        )
        try:
            await self._write_line(initialize)
        except PIPE_ERRORS:
            self._fail(
                ProcessExited(self.id, self._process.returncode)
            )
            return

        self._handshake.initialize_sent()
        self._spawn_task(self._pump_stdout())
        self._spawn_task(self._pump_stderr())

    async def wait_until_ready(
        self, timeout: Optional[float] = None
    ) -> None:
        if timeout is None:
            timeout = self._config.handshake_timeout
        try:
            await self._handshake.wait_settled(timeout)
        except asyncio.TimeoutError:
            raise HandshakeTimeout(self.id, timeout) from None

        if self.state is not SessionState.READY:
            raise self.failure or ProcessExited(
                self.id, self.returncode
            )

    async def close(self) -> None:
        """Terminate the child and mark the session closed."""
        self._handshake.close("disconnected")
        await self._terminate_process()

        pending = [
            task for task in self._tasks if not task.done()
        ]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def send_request(
        self, method: str, params: JsonValue = None
    ) -> RequestId:
        if self.state is not SessionState.READY:
            raise NotInitialized(self.id, self.state)

        request_id = self._request_ids.next_id()
        self._pending_methods[request_id] = method
        self.pending_request_id = request_id

        try:
            await self._write_line(
                self._codec.encode_request(
                    request_id, method, params
                )
            )
        except PIPE_ERRORS as e:
            self._pending_methods.pop(request_id, None)
            raise ProcessExited(
                self.id, self._process.returncode
            ) from e

        logger.command_sent(self.id, method, request_id)
        return request_id

    # =========================================================================
    # INBOUND
    # =========================================================================

    async def handle_message(
        self, message: InboundMessage
    ) -> None:
        """Apply a decoded frame to handshake or catalog state."""
        if not isinstance(message, Response):
            return

        if self._handshake.matches_init_response(message):
            await self._complete_handshake(message)
            return

        self._apply_response(message)

    async def _complete_handshake(
        self, response: Response
    ) -> None:
        if response.is_error:
            self._fail(HandshakeRejected(self.id, response.error))
            return

        if not self._handshake.init_result_received():
            return

        result = (
            response.result
            if isinstance(response.result, dict)
            else {}
        )
        self.server_info = result.get("serverInfo")
        self.server_capabilities = result.get("capabilities")
        self.protocol_version = result.get("protocolVersion")

        try:
            await self._write_line(
                self._codec.encode_notification(
                    INITIALIZED_NOTIFICATION
                )
            )
        except PIPE_ERRORS:
            self._fail(
                ProcessExited(self.id, self._process.returncode)
            )
            return

        self._handshake.initialized_flushed()

    def _apply_response(self, response: Response) -> None:
        method: Optional[str] = None
        if isinstance(response.id, (int, str)):
            method = self._pending_methods.pop(response.id, None)
            if response.id == self.pending_request_id:
                self.pending_request_id = None

        if response.is_error or not isinstance(
            response.result, dict
        ):
            return

        # Untracked ids are classified by the shape of the result
        tools = response.result.get("tools")
        if method in (TOOLS_LIST, None) and isinstance(tools, list):
            self.tools = list(tools)

        resources = response.result.get("resources")
        if method in (RESOURCES_LIST, None) and isinstance(
            resources, list
        ):
            self.resources = list(resources)

    # =========================================================================
    # BACKGROUND TASKS
    # =========================================================================

    async def _pump_stdout(self) -> None:
        try:
            async for line in iter_lines(
                self._process.stdout,
                self._config.read_chunk_size,
            ):
                try:
                    await self._line_handler(self.id, line)
                except Exception as e:
                    logger.error(
                        f"Error handling frame from {self.id}: {e}",
                        exc_info=True,
                    )
        except OSError as e:
            logger.error(
                f"Stream error on {self.id}: {e}"
            )
            self._fail(
                ProcessExited(self.id, self._process.returncode)
            )

        returncode = await self._process.wait()
        self._on_process_exit(returncode)

    async def _pump_stderr(self) -> None:
        async for line in iter_lines(
            self._process.stderr,
            self._config.read_chunk_size,
        ):
            if isinstance(line, Malformed):
                line = line.raw_text
            logger.server_stderr(self.id, line)

    async def _enforce_handshake_deadline(self) -> None:
        timeout = self._config.handshake_timeout
        try:
            await self._handshake.wait_settled(timeout)
        except asyncio.TimeoutError:
            self._fail(HandshakeTimeout(self.id, timeout))

    def _on_process_exit(self, returncode: Optional[int]) -> None:
        self.returncode = returncode
        if self.state is SessionState.READY:
            if self._handshake.close(
                f"process exited with code {returncode}"
            ):
                logger.session_closed(self.id, returncode)
        elif not self.state.is_terminal:
            self._fail(ProcessExited(self.id, returncode))

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _write_line(self, line: str) -> None:
        stdin = self._process.stdin
        async with self._write_lock:
            stdin.write(line.encode("utf-8"))
            await stdin.drain()

    def _fail(self, error: BaseException) -> bool:
        if not self._handshake.fail(error):
            return False
        logger.session_failed(self.id, str(error))
        if (
            self._process is not None
            and self._process.returncode is None
        ):
            self._spawn_task(self._terminate_process())
        return True

    async def _terminate_process(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(
                process.wait(),
                self._config.termination_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Server {self.id} ignored terminate, killing it"
            )
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    def _spawn_task(self, coroutine) -> None:
        self._tasks.append(asyncio.ensure_future(coroutine))

    def _handle_transition(
        self,
        previous: SessionState,
        current: SessionState,
        reason: Optional[str],
    ) -> None:
        if self._on_state_change is not None:
            self._on_state_change(
                self, previous, current, reason
            )

    def describe(self) -> dict[str, Any]:
        failure = self.failure
        return {
            "sessionId": self.id,
            "serverPath": self.server_path,
            "state": self.state.value,
            "serverInfo": self.server_info,
            "protocolVersion": self.protocol_version,
            "tools": self.tools,
            "resources": self.resources,
            "pendingRequestId": self.pending_request_id,
            "error": str(failure) if failure else None,
            "pid": getattr(self._process, "pid", None),
        }
