"""
mcpweb Test Suite: Shared Fixtures

Provides an in-process stand-in for an MCP server child process so that
session and manager tests run without spawning anything:

    - FakeStdin     records every frame the client writes
    - FakeProcess   stdout/stderr are asyncio.StreamReaders fed by the test
    - FakeSpawner   drop-in for asyncio.create_subprocess_exec

A real (tiny) MCP server lives in tests/fixtures/fake_mcp_server.py for
end-to-end tests through actual pipes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest

# ---------------------------------------------------------------------------
# Ensure the project root is importable
# ---------------------------------------------------------------------------
sys.path.insert(
    0,
    os.path.dirname(
        os.path.dirname(os.path.abspath(__file__))
    ),
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_SERVER_PATH = FIXTURES_DIR / "fake_mcp_server.py"

INIT_RESULT = {
    "protocolVersion": "2024-11-05",
    "capabilities": {"tools": {}, "resources": {}},
    "serverInfo": {"name": "fake-server", "version": "0.0.1"},
}


# ============================================================================
# Fake child process
# ============================================================================


class FakeStdin:
    def __init__(self) -> None:
        self.frames: list[dict[str, Any]] = []
        self.raw: bytearray = bytearray()
        self.broken: bool = False
        self.closed: bool = False
        self.on_frame: Optional[Callable[[dict], None]] = None
        self._partial: bytearray = bytearray()

    def write(self, data: bytes) -> None:
        if self.broken:
            raise BrokenPipeError("stdin closed")
        self.raw.extend(data)
        self._partial.extend(data)
        while b"\n" in self._partial:
            line, _, rest = bytes(self._partial).partition(b"\n")
            self._partial = bytearray(rest)
            frame = json.loads(line)
            self.frames.append(frame)
            if self.on_frame is not None:
                self.on_frame(frame)

    async def drain(self) -> None:
        if self.broken:
            raise ConnectionResetError("stdin closed")

    def close(self) -> None:
        self.closed = True


class FakeProcess:
    """
    Scriptable child process.

    With ``auto_initialize`` the process answers ``initialize`` with
    INIT_RESULT as soon as the request is written.
    """

    def __init__(self, auto_initialize: bool = True) -> None:
        self.stdin = FakeStdin()
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.returncode: Optional[int] = None
        self.pid = 4242
        self.terminated = False
        self._exited = asyncio.Event()
        if auto_initialize:
            self.stdin.on_frame = self._answer_initialize

    def _answer_initialize(self, frame: dict) -> None:
        if frame.get("method") == "initialize":
            self.emit(
                {"jsonrpc": "2.0", "id": frame["id"], "result": INIT_RESULT}
            )

    @property
    def sent_methods(self) -> list[Optional[str]]:
        return [frame.get("method") for frame in self.stdin.frames]

    def emit(self, message: Union[dict, str]) -> None:
        text = message if isinstance(message, str) else json.dumps(message)
        self.stdout.feed_data(text.encode() + b"\n")

    def emit_bytes(self, data: bytes) -> None:
        self.stdout.feed_data(data)

    def emit_stderr(self, text: str) -> None:
        self.stderr.feed_data(text.encode() + b"\n")

    def exit(self, code: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.exit(-15)

    def kill(self) -> None:
        self.exit(-9)


class FakeSpawner:
    """Records argv and hands out FakeProcess instances."""

    def __init__(
        self,
        auto_initialize: bool = True,
        fail_with: Optional[BaseException] = None,
    ) -> None:
        self.auto_initialize = auto_initialize
        self.fail_with = fail_with
        self.calls: list[tuple[str, ...]] = []
        self.processes: list[FakeProcess] = []

    async def __call__(self, *argv: str, **kwargs) -> FakeProcess:
        self.calls.append(argv)
        if self.fail_with is not None:
            raise self.fail_with
        process = FakeProcess(auto_initialize=self.auto_initialize)
        self.processes.append(process)
        return process

    @property
    def last_process(self) -> FakeProcess:
        return self.processes[-1]


# ============================================================================
# Helpers
# ============================================================================


async def eventually(
    predicate: Callable[[], bool],
    timeout: float = 2.0,
    interval: float = 0.005,
) -> None:
    """Poll ``predicate`` until it holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("Condition not met before timeout")
        await asyncio.sleep(interval)


def drain_envelopes(subscription) -> list:
    envelopes = []
    while subscription.pending:
        envelope = subscription._queue.get_nowait()
        if envelope is not None:
            envelopes.append(envelope)
    return envelopes


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def manual_spawner() -> FakeSpawner:
    """Spawner whose processes never answer unless scripted."""
    return FakeSpawner(auto_initialize=False)


@pytest.fixture
def fake_server_path() -> str:
    return str(FAKE_SERVER_PATH)


@pytest.fixture
def restore_mcpweb_logger():
    """Undo ``setup_logging`` side effects on the ``mcpweb`` logger."""
    mcpweb_logger = logging.getLogger("mcpweb")
    handlers = list(mcpweb_logger.handlers)
    level = mcpweb_logger.level
    yield
    for handler in mcpweb_logger.handlers:
        if handler not in handlers:
            handler.close()
    mcpweb_logger.handlers[:] = handlers
    mcpweb_logger.setLevel(level)
