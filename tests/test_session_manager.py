from __future__ import annotations

import logging

import pytest

from mcpweb.config import ClientConfig
from mcpweb.exceptions import (
    HandshakeRejected,
    HandshakeTimeout,
    NotInitialized,
    ProcessExited,
    SessionNotFound,
    SpawnFailure,
)
from mcpweb.manager import SessionManager
from mcpweb.types import EnvelopeType, SessionState
from tests.conftest import FakeSpawner, drain_envelopes, eventually

CONFIG = ClientConfig(
    script_interpreter="node",
    python_interpreter="python3",
    handshake_timeout=2.0,
    termination_timeout=0.5,
)


def _manager(spawner, **overrides) -> SessionManager:
    config = CONFIG.with_overrides(**overrides) if overrides else CONFIG
    return SessionManager(config, spawner=spawner)


class TestConnect:

    @pytest.mark.asyncio
    async def test_js_path_uses_script_interpreter(self, spawner):
        async with _manager(spawner) as manager:
            await manager.connect("./weather.js")
        assert spawner.calls == [("node", "./weather.js")]

    @pytest.mark.asyncio
    async def test_py_path_uses_python_interpreter(self, spawner):
        async with _manager(spawner) as manager:
            await manager.connect("server.py")
        assert spawner.calls == [("python3", "server.py")]

    @pytest.mark.asyncio
    async def test_connect_returns_before_ready(self, manual_spawner):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            session = manager.get_session(session_id)

            assert session.state is SessionState.AWAITING_INIT_RESULT
            assert manual_spawner.last_process.sent_methods == ["initialize"]

    @pytest.mark.asyncio
    async def test_initialize_request_shape(self, manual_spawner):
        async with _manager(manual_spawner) as manager:
            await manager.connect("server.py")
            frame = manual_spawner.last_process.stdin.frames[0]

        assert frame == {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "protocolVersion": "2024-11-05",
                "capabilities": {"tools": {}, "resources": {}},
                "clientInfo": {"name": "mcp-web-client", "version": "1.0.0"},
            },
        }

    @pytest.mark.asyncio
    async def test_session_ids_are_unique(self, spawner):
        async with _manager(spawner) as manager:
            ids = {await manager.connect("server.py") for _ in range(5)}
        assert len(ids) == 5
        assert all(session_id.startswith("server_") for session_id in ids)

    @pytest.mark.asyncio
    async def test_spawn_failure_is_raised_and_not_registered(self):
        spawner = FakeSpawner(fail_with=FileNotFoundError("no such file: node"))
        async with _manager(spawner) as manager:
            subscription = manager.hub.subscribe()

            with pytest.raises(SpawnFailure) as exc_info:
                await manager.connect("missing.js")

            assert len(manager) == 0
            assert exc_info.value.argv == ["node", "missing.js"]
            envelopes = drain_envelopes(subscription)

        assert envelopes[-1].type is EnvelopeType.DIAGNOSTIC
        assert envelopes[-1].payload["state"] == "failed"
        assert manager.metrics.sessions_failed == 1


class TestHandshake:

    @pytest.mark.asyncio
    async def test_init_result_sends_initialized_and_reaches_ready(
        self, manual_spawner
    ):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            process = manual_spawner.last_process

            process.emit('{"jsonrpc":"2.0","id":1,"result":{}}')
            session = await manager.wait_until_ready(session_id, timeout=1.0)

            assert session.state is SessionState.READY
            assert process.stdin.frames[1] == {
                "jsonrpc": "2.0",
                "method": "notifications/initialized",
            }

    @pytest.mark.asyncio
    async def test_duplicate_init_result_sends_one_notification(
        self, manual_spawner
    ):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            process = manual_spawner.last_process

            process.emit('{"jsonrpc":"2.0","id":1,"result":{}}')
            process.emit('{"jsonrpc":"2.0","id":1,"result":{}}')
            await manager.wait_until_ready(session_id, timeout=1.0)
            await eventually(lambda: manager.metrics.frames_received == 2)

            assert process.sent_methods.count("notifications/initialized") == 1

    @pytest.mark.asyncio
    async def test_undecodable_init_result_does_not_complete_handshake(
        self, manual_spawner
    ):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            session = manager.get_session(session_id)
            process = manual_spawner.last_process

            process.emit_bytes(
                b'{"jsonrpc":"2.0","id":1,'
                b'"result":{"serverInfo":{"name":"\xff\xfe"}}}\n'
            )
            await eventually(lambda: manager.metrics.frames_malformed == 1)

            assert session.state is SessionState.AWAITING_INIT_RESULT
            assert session.server_info is None
            assert process.sent_methods == ["initialize"]

            process.emit('{"jsonrpc":"2.0","id":1,"result":{}}')
            await manager.wait_until_ready(session_id, timeout=1.0)

    @pytest.mark.asyncio
    async def test_init_response_is_broadcast_before_ready_state(self, spawner):
        async with _manager(spawner) as manager:
            subscription = manager.hub.subscribe()
            session_id = await manager.connect("server.py")
            await manager.wait_until_ready(session_id, timeout=1.0)

            envelopes = drain_envelopes(subscription)

        kinds = [
            (
                envelope.type,
                envelope.payload.get("id"),
                envelope.payload.get("state"),
            )
            for envelope in envelopes
        ]
        init_response = kinds.index((EnvelopeType.SERVER_RESPONSE, 1, None))
        ready = kinds.index((EnvelopeType.SESSION_STATE, None, "ready"))
        assert init_response < ready

    @pytest.mark.asyncio
    async def test_server_info_is_recorded(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)

            assert session.server_name == "fake-server"
            assert session.protocol_version == "2024-11-05"
            assert manager.describe(session_id)["serverInfo"]["name"] == "fake-server"

    @pytest.mark.asyncio
    async def test_error_result_fails_session(self, manual_spawner):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            process = manual_spawner.last_process

            process.emit(
                {"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad version"}}
            )
            with pytest.raises(HandshakeRejected, match="bad version"):
                await manager.wait_until_ready(session_id, timeout=1.0)

            assert manager.get_session(session_id).state is SessionState.FAILED
            assert "notifications/initialized" not in process.sent_methods
            await eventually(lambda: process.terminated)

    @pytest.mark.asyncio
    async def test_handshake_timeout_fails_session(self, manual_spawner):
        async with _manager(manual_spawner, handshake_timeout=0.05) as manager:
            subscription = manager.hub.subscribe()
            session_id = await manager.connect("server.py")
            session = manager.get_session(session_id)

            await eventually(lambda: session.state is SessionState.FAILED)

            assert isinstance(session.failure, HandshakeTimeout)
            await eventually(lambda: manual_spawner.last_process.terminated)
            diagnostics = [
                envelope
                for envelope in drain_envelopes(subscription)
                if envelope.type is EnvelopeType.DIAGNOSTIC
            ]
            assert diagnostics[0].payload["state"] == "failed"

    @pytest.mark.asyncio
    async def test_wait_until_ready_is_bounded(self, manual_spawner):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            with pytest.raises(HandshakeTimeout):
                await manager.wait_until_ready(session_id, timeout=0.02)

    @pytest.mark.asyncio
    async def test_exit_before_ready_fails_session(self, manual_spawner):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            manual_spawner.last_process.exit(1)

            with pytest.raises(ProcessExited):
                await manager.wait_until_ready(session_id, timeout=1.0)
            assert manager.get_session(session_id).returncode == 1

    @pytest.mark.asyncio
    async def test_state_transitions_are_broadcast(self, spawner):
        async with _manager(spawner) as manager:
            subscription = manager.hub.subscribe()
            session_id = await manager.connect("server.py")
            await manager.wait_until_ready(session_id, timeout=1.0)

            states = [
                envelope.payload["state"]
                for envelope in drain_envelopes(subscription)
                if envelope.type is EnvelopeType.SESSION_STATE
            ]

        assert states == [
            "awaiting_init_result",
            "awaiting_initialized_ack",
            "ready",
        ]


class TestCommands:

    @pytest.mark.asyncio
    async def test_unknown_session_touches_no_process(self, spawner):
        async with _manager(spawner) as manager:
            with pytest.raises(SessionNotFound):
                await manager.call_tool("server_missing", "echo", {"text": "hi"})
            with pytest.raises(SessionNotFound):
                await manager.list_tools("server_missing")
            with pytest.raises(SessionNotFound):
                await manager.list_resources("server_missing")

        assert spawner.calls == []

    @pytest.mark.asyncio
    async def test_commands_before_ready_never_reach_stdin(
        self, manual_spawner
    ):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            process = manual_spawner.last_process

            with pytest.raises(NotInitialized):
                await manager.list_tools(session_id)
            with pytest.raises(NotInitialized):
                await manager.list_resources(session_id)
            with pytest.raises(NotInitialized) as exc_info:
                await manager.call_tool(session_id, "echo", {})

            assert exc_info.value.state is SessionState.AWAITING_INIT_RESULT
            assert process.sent_methods == ["initialize"]
            assert manager.metrics.commands_total == 0

    @pytest.mark.asyncio
    async def test_commands_after_failure_are_rejected(self, manual_spawner):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            manual_spawner.last_process.exit(1)
            await eventually(
                lambda: manager.get_session(session_id).state.is_terminal
            )

            with pytest.raises(NotInitialized):
                await manager.list_tools(session_id)

    @pytest.mark.asyncio
    async def test_call_tool_request_shape(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            await manager.wait_until_ready(session_id, timeout=1.0)

            request_id = await manager.call_tool(
                session_id, "echo", {"text": "hello", "nested": {"n": [1, None]}}
            )
            frame = spawner.last_process.stdin.frames[-1]

        assert frame == {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "tools/call",
            "params": {
                "name": "echo",
                "arguments": {"text": "hello", "nested": {"n": [1, None]}},
            },
        }

    @pytest.mark.asyncio
    async def test_call_tool_without_args_sends_empty_object(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            await manager.wait_until_ready(session_id, timeout=1.0)
            await manager.call_tool(session_id, "ping")

        assert spawner.last_process.stdin.frames[-1]["params"]["arguments"] == {}

    @pytest.mark.asyncio
    async def test_request_ids_increase_and_track_pending(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)

            first = await manager.list_tools(session_id)
            second = await manager.list_resources(session_id)

            assert first == 2
            assert second > first
            assert session.pending_request_id == second

            spawner.last_process.emit(
                {"jsonrpc": "2.0", "id": second, "result": {"resources": []}}
            )
            await eventually(lambda: session.pending_request_id is None)

    @pytest.mark.asyncio
    async def test_slow_handshake_does_not_block_other_session(self):
        spawner = FakeSpawner(auto_initialize=False)
        async with _manager(spawner) as manager:
            slow_id = await manager.connect("slow.py")

            spawner.auto_initialize = True
            fast_id = await manager.connect("fast.py")
            await manager.wait_until_ready(fast_id, timeout=0.5)
            await manager.list_tools(fast_id)

            assert manager.get_session(slow_id).state is SessionState.AWAITING_INIT_RESULT
            assert spawner.processes[1].sent_methods[-1] == "tools/list"
            assert spawner.processes[0].sent_methods == ["initialize"]


class TestInboundFrames:

    @pytest.mark.asyncio
    async def test_last_tools_response_wins_and_broadcasts_in_order(
        self, spawner
    ):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)
            subscription = manager.hub.subscribe()

            spawner.last_process.emit_bytes(
                b'{"result":{"tools":[{"name":"echo"}]}}\n'
                b'{"result":{"tools":[]}}\n'
            )
            await eventually(lambda: subscription.pending == 2)

            envelopes = drain_envelopes(subscription)
            assert session.tools == []
            assert [envelope.type for envelope in envelopes] == [
                EnvelopeType.SERVER_RESPONSE,
                EnvelopeType.SERVER_RESPONSE,
            ]
            assert envelopes[0].payload == {"result": {"tools": [{"name": "echo"}]}}
            assert envelopes[1].payload == {"result": {"tools": []}}
            assert all(envelope.session_id == session_id for envelope in envelopes)

    @pytest.mark.asyncio
    async def test_list_responses_replace_catalogs(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)

            tools_id = await manager.list_tools(session_id)
            spawner.last_process.emit(
                {"jsonrpc": "2.0", "id": tools_id, "result": {"tools": [{"name": "a"}, {"name": "b"}]}}
            )
            resources_id = await manager.list_resources(session_id)
            spawner.last_process.emit(
                {"jsonrpc": "2.0", "id": resources_id, "result": {"resources": [{"uri": "memo://x"}]}}
            )
            await eventually(lambda: session.resources != [])

            assert [tool["name"] for tool in session.tools] == ["a", "b"]
            assert session.resources == [{"uri": "memo://x"}]

    @pytest.mark.asyncio
    async def test_call_result_does_not_touch_catalog(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)
            session.tools = [{"name": "keep"}]

            call_id = await manager.call_tool(session_id, "echo", {})
            spawner.last_process.emit(
                {"jsonrpc": "2.0", "id": call_id, "result": {"tools": [], "content": []}}
            )
            await eventually(lambda: session.pending_request_id is None)

            assert session.tools == [{"name": "keep"}]

    @pytest.mark.asyncio
    async def test_error_response_keeps_previous_catalog(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)
            session.tools = [{"name": "keep"}]

            tools_id = await manager.list_tools(session_id)
            spawner.last_process.emit(
                {"jsonrpc": "2.0", "id": tools_id, "error": {"code": -1, "message": "x"}}
            )
            await eventually(lambda: session.pending_request_id is None)

            assert session.tools == [{"name": "keep"}]

    @pytest.mark.asyncio
    async def test_malformed_lines_change_nothing(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)
            session.tools = [{"name": "t"}]
            session.resources = [{"uri": "r"}]
            subscription = manager.hub.subscribe()

            process = spawner.last_process
            process.emit("this is not json")
            process.emit('{"jsonrpc":"2.0","id":1')
            process.emit("[1,2,3]")
            process.emit('{"jsonrpc":"2.0","method":"notifications/message"}')
            await eventually(lambda: subscription.pending == 4)

            envelopes = drain_envelopes(subscription)
            assert [envelope.type for envelope in envelopes] == [
                EnvelopeType.DIAGNOSTIC,
                EnvelopeType.DIAGNOSTIC,
                EnvelopeType.DIAGNOSTIC,
                EnvelopeType.SERVER_RESPONSE,
            ]
            assert envelopes[0].payload["error"] == "DecodeFailure"
            assert envelopes[0].payload["raw"] == "this is not json"
            assert session.tools == [{"name": "t"}]
            assert session.resources == [{"uri": "r"}]
            assert session.state is SessionState.READY
            assert manager.metrics.frames_malformed == 3

    @pytest.mark.asyncio
    async def test_invalid_utf8_frame_is_a_diagnostic(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)
            session.tools = [{"name": "t"}]
            session.resources = [{"uri": "r"}]
            subscription = manager.hub.subscribe()

            spawner.last_process.emit_bytes(
                b'{"jsonrpc":"2.0","id":7,'
                b'"result":{"tools":[{"name":"\xff\xfe"}]}}\n'
            )
            await eventually(lambda: subscription.pending == 1)

            (envelope,) = drain_envelopes(subscription)
            assert envelope.type is EnvelopeType.DIAGNOSTIC
            assert envelope.payload["error"] == "DecodeFailure"
            assert "\\xff\\xfe" in envelope.payload["raw"]
            assert session.tools == [{"name": "t"}]
            assert session.resources == [{"uri": "r"}]
            assert session.state is SessionState.READY
            assert manager.metrics.frames_malformed == 1

    @pytest.mark.asyncio
    async def test_stderr_is_logged_not_parsed(self, spawner, caplog):
        caplog.set_level(logging.INFO, logger="mcpweb")
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            await manager.wait_until_ready(session_id, timeout=1.0)
            frames_before = manager.metrics.frames_received

            spawner.last_process.emit_stderr('{"jsonrpc":"2.0","id":99,"result":{}}')
            spawner.last_process.emit_stderr("Traceback: something odd")
            await eventually(
                lambda: "Traceback: something odd" in caplog.text
            )

            assert manager.metrics.frames_received == frames_before


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_exit_after_ready_closes_session(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            session = await manager.wait_until_ready(session_id, timeout=1.0)
            subscription = manager.hub.subscribe()

            spawner.last_process.exit(0)
            await eventually(lambda: session.state is SessionState.CLOSED)

            envelopes = drain_envelopes(subscription)
            assert envelopes[-1].type is EnvelopeType.DIAGNOSTIC
            assert envelopes[-1].payload["state"] == "closed"
            with pytest.raises(NotInitialized):
                await manager.list_tools(session_id)

    @pytest.mark.asyncio
    async def test_disconnect_terminates_and_removes(self, spawner):
        async with _manager(spawner) as manager:
            session_id = await manager.connect("server.py")
            await manager.disconnect(session_id)

            assert session_id not in manager
            assert spawner.last_process.terminated
            with pytest.raises(SessionNotFound):
                await manager.disconnect(session_id)

    @pytest.mark.asyncio
    async def test_shutdown_terminates_every_process(self, spawner):
        manager = _manager(spawner)
        for _ in range(3):
            await manager.connect("server.py")

        await manager.shutdown()

        assert len(manager) == 0
        assert all(process.terminated for process in spawner.processes)

    @pytest.mark.asyncio
    async def test_broken_stdin_during_handshake_fails_session(
        self, manual_spawner
    ):
        async with _manager(manual_spawner) as manager:
            session_id = await manager.connect("server.py")
            process = manual_spawner.last_process
            process.stdin.broken = True

            process.emit('{"jsonrpc":"2.0","id":1,"result":{}}')
            with pytest.raises(ProcessExited):
                await manager.wait_until_ready(session_id, timeout=1.0)
