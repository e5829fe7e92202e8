"""Tests for the shared adapter lifecycle (adapter/lifecycle.py)."""

from __future__ import annotations

import asyncio
import logging

import pytest

from mcp_cli.adapter.http import HttpAdapter
from mcp_cli.adapter.lifecycle import CLIENT_INFO, default_session_factory
from mcp_cli.adapter.session import McpTransportSession
from mcp_cli.errors import (
    AlreadyConnectedError,
    HandshakeFailedError,
    InvalidConfigError,
    McpCliError,
    NotConnectedError,
    OperationCancelledError,
    OperationFailedError,
    SessionOpenError,
)
from mcp_cli.models import DEFAULT_TIMEOUT, AdapterConfig, TransportKind

URL = "http://localhost:8080/mcp"

# --- Helpers ---------------------------------------------------------------


def _adapter(session_factory, **overrides) -> HttpAdapter:
    config = AdapterConfig(kind=TransportKind.HTTP, url=URL, **overrides)
    return HttpAdapter(config, session_factory=session_factory)


# --- Construction -----------------------------------------------------------


class TestConstruction:
    def test_zero_timeout_gets_default(self, session_factory):
        adapter = _adapter(session_factory, timeout=0)
        assert adapter.config.timeout == DEFAULT_TIMEOUT

    def test_mismatched_kind_is_rejected(self, session_factory):
        config = AdapterConfig(kind=TransportKind.STDIO, url=URL)
        with pytest.raises(InvalidConfigError, match="HttpAdapter serves http, streamable"):
            HttpAdapter(config, session_factory=session_factory)
        session_factory.assert_not_called()

    def test_streamable_kind_is_kept(self, session_factory):
        adapter = _adapter(session_factory)
        streamable = HttpAdapter(
            AdapterConfig(kind=TransportKind.STREAMABLE, url=URL),
            session_factory=session_factory,
        )
        assert adapter.kind is TransportKind.HTTP
        assert streamable.kind is TransportKind.STREAMABLE

    def test_starts_disconnected_without_io(self, session_factory):
        adapter = _adapter(session_factory)
        assert adapter.is_connected is False
        assert "disconnected" in repr(adapter)
        session_factory.assert_not_called()

    def test_default_session_factory(self):
        config = AdapterConfig(kind=TransportKind.HTTP, url=URL)
        session = default_session_factory(config)
        assert isinstance(session, McpTransportSession)
        assert session.client_info is CLIENT_INFO
        assert CLIENT_INFO.name == "mcp-cli-adapter"


# --- Connect / disconnect ---------------------------------------------------


class TestConnect:
    async def test_connect_then_disconnect(self, session_factory, fake_session):
        adapter = _adapter(session_factory)

        await adapter.connect()

        assert adapter.is_connected is True
        assert adapter.get_server_info().name == "fake-server"
        assert adapter.get_server_info().version == "1.2.3"
        assert fake_session.calls == ["open", "initialize"]

        await adapter.disconnect()

        assert adapter.is_connected is False
        assert fake_session.close_count == 1
        with pytest.raises(NotConnectedError):
            adapter.get_server_info()

    async def test_already_connected(self, session_factory, fake_session):
        adapter = _adapter(session_factory)
        await adapter.connect()

        with pytest.raises(AlreadyConnectedError):
            await adapter.connect()

        assert adapter.is_connected is True
        assert session_factory.call_count == 1
        assert fake_session.calls == ["open", "initialize"]

    async def test_open_failure(self, session_factory, fake_session):
        fake_session.errors["open"] = OSError("connection refused")
        adapter = _adapter(session_factory)

        with pytest.raises(SessionOpenError, match="connection refused") as exc_info:
            await adapter.connect()

        assert isinstance(exc_info.value.__cause__, OSError)
        assert adapter.is_connected is False
        assert fake_session.close_count == 1
        assert "initialize" not in fake_session.calls

    async def test_handshake_failure_releases_once(self, session_factory, fake_session):
        fake_session.errors["initialize"] = RuntimeError("unsupported protocol version")
        adapter = _adapter(session_factory)

        with pytest.raises(HandshakeFailedError, match="unsupported protocol version"):
            await adapter.connect()

        assert adapter.is_connected is False
        assert fake_session.close_count == 1
        with pytest.raises(NotConnectedError):
            adapter.get_server_info()

    async def test_cleanup_failure_does_not_mask_connect_error(
        self, session_factory, fake_session
    ):
        fake_session.errors["initialize"] = RuntimeError("bad handshake")
        fake_session.errors["close"] = RuntimeError("close exploded")
        adapter = _adapter(session_factory)

        with pytest.raises(HandshakeFailedError, match="bad handshake"):
            await adapter.connect()
        assert fake_session.close_count == 1

    async def test_handshake_timeout(self, session_factory, fake_session):
        fake_session.hang.add("initialize")
        adapter = _adapter(session_factory, timeout=0.05)

        with pytest.raises(HandshakeFailedError, match="no response within 0.05s"):
            await adapter.connect()

        assert adapter.is_connected is False
        assert fake_session.close_count == 1

    async def test_caller_deadline_wins_over_handshake_timeout(
        self, session_factory, fake_session
    ):
        fake_session.hang.add("initialize")
        adapter = _adapter(session_factory, timeout=30.0)

        with pytest.raises(OperationCancelledError) as exc_info:
            await adapter.connect(timeout=0.05)

        assert exc_info.value.operation == "connect"
        assert exc_info.value.target == URL
        assert adapter.is_connected is False
        assert fake_session.close_count == 1

    async def test_reconnect_after_failure(self, session_factory, fake_session):
        fake_session.errors["initialize"] = RuntimeError("flaky")
        adapter = _adapter(session_factory)
        with pytest.raises(HandshakeFailedError):
            await adapter.connect()

        del fake_session.errors["initialize"]
        await adapter.connect()

        assert adapter.is_connected is True
        assert session_factory.call_count == 2

    async def test_async_context_manager(self, session_factory, fake_session):
        async with _adapter(session_factory) as adapter:
            assert adapter.is_connected is True
        assert adapter.is_connected is False
        assert fake_session.close_count == 1


class TestDisconnect:
    async def test_noop_when_never_connected(self, session_factory):
        adapter = _adapter(session_factory)
        await adapter.disconnect()
        session_factory.assert_not_called()

    async def test_idempotent(self, session_factory, fake_session):
        adapter = _adapter(session_factory)
        await adapter.connect()

        await adapter.disconnect()
        await adapter.disconnect()

        assert fake_session.close_count == 1

    async def test_close_error_still_clears_state(self, session_factory, fake_session):
        fake_session.errors["close"] = RuntimeError("pipe already closed")
        adapter = _adapter(session_factory)
        await adapter.connect()

        with pytest.raises(OperationFailedError) as exc_info:
            await adapter.disconnect()

        assert exc_info.value.operation == "disconnect"
        assert adapter.is_connected is False
        with pytest.raises(NotConnectedError):
            adapter.get_server_info()


# --- Capability operations --------------------------------------------------


class TestOperations:
    @pytest.mark.parametrize(
        "call",
        [
            lambda a: a.list_tools(),
            lambda a: a.list_resources(),
            lambda a: a.list_prompts(),
            lambda a: a.call_tool("echo", {}),
            lambda a: a.read_resource("file:///notes.txt"),
            lambda a: a.get_prompt("greet"),
        ],
    )
    async def test_not_connected_does_no_io(self, session_factory, call):
        adapter = _adapter(session_factory)

        with pytest.raises(NotConnectedError):
            await call(adapter)

        session_factory.assert_not_called()

    async def test_operations_after_connect(self, session_factory, fake_session):
        adapter = _adapter(session_factory)
        await adapter.connect()

        tools = await adapter.list_tools()
        resources = await adapter.list_resources()
        prompts = await adapter.list_prompts()
        result = await adapter.call_tool("echo", {"text": "hi"})
        contents = await adapter.read_resource("file:///notes.txt")
        prompt = await adapter.get_prompt("greet", {"who": "ada"})

        assert [t.name for t in tools] == ["echo"]
        assert [r.name for r in resources] == ["notes"]
        assert [p.name for p in prompts] == ["greet"]
        assert result.content[0].text == "echo:[('text', 'hi')]"
        assert contents.contents[0].text == "hello"
        assert prompt.messages[0].content.text == "greet:[('who', 'ada')]"

    async def test_concurrent_operations(self, session_factory):
        adapter = _adapter(session_factory)
        await adapter.connect()

        tools, prompts = await asyncio.gather(adapter.list_tools(), adapter.list_prompts())

        assert tools[0].name == "echo"
        assert prompts[0].name == "greet"

    async def test_failure_is_wrapped_with_operation_and_target(
        self, session_factory, fake_session
    ):
        fake_session.errors["list_tools"] = RuntimeError("stream closed")
        adapter = _adapter(session_factory)
        await adapter.connect()

        with pytest.raises(OperationFailedError) as exc_info:
            await adapter.list_tools()

        err = exc_info.value
        assert err.operation == "list tools"
        assert err.target == URL
        assert "stream closed" in str(err)
        assert isinstance(err.__cause__, RuntimeError)
        assert adapter.is_connected is True

    async def test_call_tool_target_is_tool_name(self, session_factory, fake_session):
        fake_session.errors["call_tool"] = ValueError("bad args")
        adapter = _adapter(session_factory)
        await adapter.connect()

        with pytest.raises(OperationFailedError, match="call tool failed for echo"):
            await adapter.call_tool("echo", {"x": 1})

    async def test_read_resource_target_is_uri(self, session_factory, fake_session):
        fake_session.errors["read_resource"] = ValueError("no such resource")
        adapter = _adapter(session_factory)
        await adapter.connect()

        with pytest.raises(OperationFailedError) as exc_info:
            await adapter.read_resource("file:///missing")

        assert exc_info.value.target == "file:///missing"

    async def test_timeout_error_from_inside_is_a_failure(self, session_factory, fake_session):
        fake_session.errors["list_prompts"] = TimeoutError("server-side timeout")
        adapter = _adapter(session_factory)
        await adapter.connect()

        with pytest.raises(OperationFailedError, match="server-side timeout"):
            await adapter.list_prompts()

    async def test_deadline_cancels_hanging_call(self, session_factory, fake_session):
        fake_session.hang.add("call_tool")
        adapter = _adapter(session_factory)
        await adapter.connect()
        loop = asyncio.get_running_loop()

        started = loop.time()
        with pytest.raises(OperationCancelledError) as exc_info:
            await adapter.call_tool("slow", {}, timeout=0.05)

        assert loop.time() - started < 1.0
        assert exc_info.value.operation == "call tool"
        assert exc_info.value.target == "slow"
        assert isinstance(exc_info.value, McpCliError)
        assert adapter.is_connected is True

    async def test_task_cancellation_propagates(self, session_factory, fake_session):
        fake_session.hang.add("list_resources")
        adapter = _adapter(session_factory)
        await adapter.connect()

        task = asyncio.create_task(adapter.list_resources())
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert adapter.is_connected is True


# --- Logging ----------------------------------------------------------------


class TestVerboseLogging:
    async def test_quiet_by_default(self, session_factory, caplog):
        adapter = _adapter(session_factory)
        with caplog.at_level(logging.INFO, logger="mcp_cli"):
            await adapter.connect()
        assert not [r for r in caplog.records if r.name == "mcp_cli.adapter.lifecycle"]

    async def test_verbose_logs_progress(self, session_factory, caplog):
        adapter = _adapter(session_factory, verbose=True)
        with caplog.at_level(logging.INFO, logger="mcp_cli"):
            await adapter.connect()
        assert "Successfully connected to server: fake-server 1.2.3" in caplog.text
