"""Connection lifecycle shared by every server adapter.

State machine: Disconnected -> (connect) -> Connected -> (disconnect) ->
Disconnected. ``is_connected`` and ``server_info`` always change together.
The transport session is created in ``connect()`` and released exactly once,
either by a failed ``connect()`` or by ``disconnect()``.

Deadlines are ``asyncio.timeout`` scopes on the caller's task. The SDK
transport itself runs on a separate task owned by the session.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, TypeVar

from mcp.types import (
    CallToolResult,
    GetPromptResult,
    Implementation,
    Prompt,
    ReadResourceResult,
    Resource,
    Tool,
)

from mcp_cli import __version__
from mcp_cli.adapter.base import SessionFactory, TransportSession
from mcp_cli.adapter.config import validate_config
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
from mcp_cli.models import DEFAULT_TIMEOUT, AdapterConfig, ServerIdentity, TransportKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLIENT_INFO = Implementation(name="mcp-cli-adapter", version=__version__)


def default_session_factory(config: AdapterConfig) -> TransportSession:
    """Build the MCP SDK-backed session for ``config``."""
    return McpTransportSession(config, client_info=CLIENT_INFO)


class BaseAdapter:
    """Common state handling and error wrapping for all transports.

    Subclasses list the transport ``kinds`` they serve and may override
    ``_before_handshake`` to run transport-specific checks (e.g. subprocess
    readiness) after the session opens and before the initialize handshake.
    """

    kinds: tuple[TransportKind, ...] = ()

    def __init__(
        self,
        config: AdapterConfig,
        *,
        session_factory: SessionFactory | None = None,
    ) -> None:
        if config.timeout == 0:
            config = replace(config, timeout=DEFAULT_TIMEOUT)
        if config.kind not in self.kinds:
            served = ", ".join(self.kinds)
            raise InvalidConfigError(
                f"{type(self).__name__} serves {served} transports, not '{config.kind}'"
            )
        validate_config(config.kind, config)
        self.config = config
        self._session_factory = session_factory or default_session_factory
        self._session: TransportSession | None = None
        self._server_info: ServerIdentity | None = None
        self._connected = False

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"{type(self).__name__}({self.target!r}, {state})"

    @property
    def kind(self) -> TransportKind:
        return self.config.kind

    @property
    def target(self) -> str:
        return self.config.target

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ── Lifecycle ────────────────────────────────────────────

    async def connect(self, *, timeout: float | None = None) -> None:
        """Open the transport, run pre-handshake checks, and initialize.

        ``timeout`` bounds the whole call; the handshake is additionally
        bounded by ``config.timeout`` (whichever expires first wins).

        Raises:
            AlreadyConnectedError: adapter is already connected.
            SessionOpenError: the subprocess or HTTP channel could not open.
            ProcessUnavailableError / ProcessNotReadyError: readiness failed.
            HandshakeFailedError: initialize failed or timed out.
            OperationCancelledError: ``timeout`` expired.
        """
        if self._connected:
            raise AlreadyConnectedError(f"Already connected to {self.target}")

        self._log("Connecting to MCP server via %s: %s", self.kind, self.target)
        session = self._session_factory(self.config)
        try:
            async with _cancel_after(timeout, operation="connect", target=self.target):
                await self._open(session)
                await self._before_handshake(session)
                server_info = await self._handshake(session)
        except BaseException:
            await self._release_after_failure(session)
            raise

        self._session = session
        self._server_info = server_info
        self._connected = True
        self._log(
            "Successfully connected to server: %s %s",
            server_info.name,
            server_info.version,
        )

    async def disconnect(self) -> None:
        """Release the transport session. No-op when not connected.

        State is cleared even if releasing fails; the release failure is
        then raised as ``OperationFailedError``.
        """
        if not self._connected:
            return

        self._log("Disconnecting from MCP server %s", self.target)
        session = self._session
        self._session = None
        self._server_info = None
        self._connected = False
        if session is None:
            return
        try:
            await session.close()
        except Exception as exc:
            raise OperationFailedError("disconnect", self.target, exc) from exc

    def get_server_info(self) -> ServerIdentity:
        if not self._connected or self._server_info is None:
            raise NotConnectedError(f"Not connected to server {self.target}")
        return self._server_info

    async def __aenter__(self) -> BaseAdapter:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    # ── Capability operations ───────────────────────────────

    async def list_tools(self, *, timeout: float | None = None) -> list[Tool]:
        return await self._call(
            "list tools", self.target, lambda s: s.list_tools(), timeout
        )

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> CallToolResult:
        return await self._call(
            "call tool", name, lambda s: s.call_tool(name, arguments), timeout
        )

    async def list_resources(self, *, timeout: float | None = None) -> list[Resource]:
        return await self._call(
            "list resources", self.target, lambda s: s.list_resources(), timeout
        )

    async def read_resource(self, uri: str, *, timeout: float | None = None) -> ReadResourceResult:
        return await self._call(
            "read resource", uri, lambda s: s.read_resource(uri), timeout
        )

    async def list_prompts(self, *, timeout: float | None = None) -> list[Prompt]:
        return await self._call(
            "list prompts", self.target, lambda s: s.list_prompts(), timeout
        )

    async def get_prompt(
        self,
        name: str,
        arguments: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> GetPromptResult:
        return await self._call(
            "get prompt", name, lambda s: s.get_prompt(name, arguments), timeout
        )

    # ── Internals ────────────────────────────────────────────

    async def _before_handshake(self, session: TransportSession) -> None:
        """Hook for transport-specific checks between open and handshake."""

    async def _open(self, session: TransportSession) -> None:
        try:
            await session.open()
        except Exception as exc:
            self._log("Opening transport failed: %r", exc)
            raise SessionOpenError(
                f"Failed to open {self.kind} transport to {self.target}: "
                f"{type(exc).__name__}: {exc}"
            ) from exc

    async def _handshake(self, session: TransportSession) -> ServerIdentity:
        self._log("Sending initialize request with timeout: %gs", self.config.timeout)
        try:
            async with asyncio.timeout(self.config.timeout) as scope:
                return await session.initialize()
        except Exception as exc:
            self._log("Initialize failed: %r", exc)
            if isinstance(exc, TimeoutError) and scope.expired():
                reason = f"no response within {self.config.timeout:g}s"
            else:
                reason = f"{type(exc).__name__}: {exc}"
            raise HandshakeFailedError(
                f"Failed to initialize session with {self.target}: {reason}"
            ) from exc

    async def _release_after_failure(self, session: TransportSession) -> None:
        try:
            await session.close()
        except Exception as exc:
            if self.config.verbose:
                logger.warning("Failed to close transport for %s during cleanup: %s", self.target, exc)

    async def _call(
        self,
        operation: str,
        target: str,
        call: Callable[[TransportSession], Awaitable[T]],
        timeout: float | None,
    ) -> T:
        session = self._require_session()
        try:
            async with _cancel_after(timeout, operation=operation, target=target):
                return await call(session)
        except McpCliError:
            raise
        except Exception as exc:
            raise OperationFailedError(operation, target, exc) from exc

    def _require_session(self) -> TransportSession:
        if not self._connected or self._session is None:
            raise NotConnectedError(f"Not connected to server {self.target}")
        return self._session

    def _log(self, msg: str, *args: object) -> None:
        if self.config.verbose:
            logger.info(msg, *args)


@asynccontextmanager
async def _cancel_after(
    timeout: float | None, *, operation: str, target: str
) -> AsyncIterator[None]:
    """Turn expiry of a caller deadline into ``OperationCancelledError``.

    A ``TimeoutError`` raised by the wrapped code (not by this scope's
    expiry) propagates unchanged.
    """
    scope = asyncio.timeout(timeout)
    try:
        async with scope:
            yield
    except TimeoutError as exc:
        if scope.expired():
            raise OperationCancelledError(operation, target, timeout) from exc
        raise

