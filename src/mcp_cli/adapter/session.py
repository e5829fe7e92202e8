"""MCP SDK transport sessions: stdio subprocess and streamable HTTP.

Byte-level framing and the JSON-RPC session live in the ``mcp`` SDK. This
module only opens the right SDK transport for an ``AdapterConfig`` and
flattens paginated list results.

The SDK runs each transport inside an anyio task group. When a background
reader or writer in that group fails, anyio cancels the task that entered
the group and reports the real error only when the group exits. So the SDK
context managers are entered by a dedicated runner task, and every request
is raced against it: if the runner stops first, the request fails with
``TransportClosedError`` chained to the transport's root error.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from typing import Any, TypeVar

import httpx
from mcp.client.session import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.client.streamable_http import streamable_http_client
from mcp.types import (
    CallToolResult,
    GetPromptResult,
    Implementation,
    Prompt,
    ReadResourceResult,
    Resource,
    Tool,
)
from pydantic import AnyUrl

from mcp_cli.models import AdapterConfig, ServerIdentity, TransportKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upper bound on list pages walked; guards against a server that never
# stops returning a cursor.
_MAX_PAGES = 100


class TransportClosedError(ConnectionError):
    """The SDK transport stopped while the session was still in use."""


def root_cause(exc: BaseException) -> BaseException:
    """Unwrap single-member exception groups down to the error inside."""
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "transport stopped"
    exc = root_cause(exc)
    return f"{type(exc).__name__}: {exc}"


class McpTransportSession:
    """TransportSession backed by ``mcp.ClientSession``."""

    def __init__(self, config: AdapterConfig, *, client_info: Implementation | None = None) -> None:
        self.config = config
        self.client_info = client_info
        self._session: ClientSession | None = None
        self._runner: asyncio.Task[None] | None = None
        self._ready: asyncio.Future[None] | None = None
        self._stop = asyncio.Event()

    async def open(self) -> None:
        if self._runner is not None:
            return
        self._ready = asyncio.get_running_loop().create_future()
        self._stop = asyncio.Event()
        self._runner = asyncio.create_task(
            self._run(self._ready), name=f"mcp-transport {self.config.target}"
        )
        try:
            await self._until_stopped(self._ready)
        except BaseException:
            try:
                await self.close()
            except Exception as exc:
                logger.debug("Cleanup after failed open of %s: %s", self.config.target, exc)
            raise

    async def _run(self, ready: asyncio.Future[None]) -> None:
        try:
            async with AsyncExitStack() as stack:
                read_stream, write_stream = await self._open_streams(stack)
                self._session = await stack.enter_async_context(
                    ClientSession(read_stream, write_stream, client_info=self.client_info)
                )
                if not ready.done():
                    ready.set_result(None)
                await self._stop.wait()
        except Exception as exc:
            if ready.done():
                raise
            # Failed while opening: hand the error to open() instead.
            ready.set_exception(root_cause(exc))
        finally:
            self._session = None

    async def _open_streams(self, stack: AsyncExitStack) -> tuple[Any, Any]:
        if self.config.kind is TransportKind.STDIO:
            params = StdioServerParameters(
                command=self.config.command,
                args=list(self.config.args),
                env=self.config.env or None,
            )
            return await stack.enter_async_context(stdio_client(params))

        http_client = await stack.enter_async_context(
            httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout, connect=10.0),
                follow_redirects=True,
            )
        )
        read_stream, write_stream, _ = await stack.enter_async_context(
            streamable_http_client(self.config.url, http_client=http_client)
        )
        return read_stream, write_stream

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError("transport session is not open")
        return self._session

    async def probe(self) -> None:
        # ``ping`` is valid before initialization, unlike every other request.
        await self._request(lambda s: s.send_ping())

    async def initialize(self) -> ServerIdentity:
        # ClientSession sends LATEST_PROTOCOL_VERSION and rejects servers
        # answering with a version it does not support.
        result = await self._request(lambda s: s.initialize())
        logger.debug(
            "Negotiated protocol %s with %s",
            result.protocolVersion,
            result.serverInfo.name,
        )
        return ServerIdentity(name=result.serverInfo.name, version=result.serverInfo.version)

    async def list_tools(self) -> list[Tool]:
        tools: list[Tool] = []
        cursor: str | None = None
        for _ in range(_MAX_PAGES):
            result = await self._request(lambda s: s.list_tools(cursor=cursor))
            tools.extend(result.tools)
            cursor = result.nextCursor
            if not cursor:
                break
        return tools

    async def list_resources(self) -> list[Resource]:
        resources: list[Resource] = []
        cursor: str | None = None
        for _ in range(_MAX_PAGES):
            result = await self._request(lambda s: s.list_resources(cursor=cursor))
            resources.extend(result.resources)
            cursor = result.nextCursor
            if not cursor:
                break
        return resources

    async def list_prompts(self) -> list[Prompt]:
        prompts: list[Prompt] = []
        cursor: str | None = None
        for _ in range(_MAX_PAGES):
            result = await self._request(lambda s: s.list_prompts(cursor=cursor))
            prompts.extend(result.prompts)
            cursor = result.nextCursor
            if not cursor:
                break
        return prompts

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        return await self._request(lambda s: s.call_tool(name, arguments or {}))

    async def read_resource(self, uri: str) -> ReadResourceResult:
        return await self._request(lambda s: s.read_resource(AnyUrl(uri)))

    async def get_prompt(self, name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        return await self._request(lambda s: s.get_prompt(name, arguments or None))

    async def close(self) -> None:
        """Stop the runner task and wait for the SDK transport to unwind.

        A transport that already stopped on its own was reported by the
        request that saw it; only errors raised while shutting down here
        are raised again.
        """
        runner, self._runner = self._runner, None
        if runner is None:
            return
        stopped_early = runner.done()
        self._stop.set()
        if self._session is None and not runner.done():
            # Still opening: there is nothing to shut down gracefully.
            runner.cancel()
        await asyncio.wait({runner})

        if runner.cancelled() or runner.exception() is None:
            return
        exc = runner.exception()
        if stopped_early:
            logger.debug(
                "Transport for %s had already stopped: %s", self.config.target, _describe(exc)
            )
            return
        raise TransportClosedError(
            f"Failed to close transport for {self.config.target}: {_describe(exc)}"
        ) from root_cause(exc)

    # ── Internals ────────────────────────────────────────────

    async def _request(self, call: Callable[[ClientSession], Awaitable[T]]) -> T:
        if self._runner is None:
            raise RuntimeError("transport session is not open")
        if self._runner.done() or self._session is None:
            raise self._closed_error()
        return await self._until_stopped(call(self._session))

    async def _until_stopped(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the runner task stops first."""
        runner = self._runner
        if runner is None:
            raise RuntimeError("transport session is not open")
        request = asyncio.ensure_future(awaitable)
        request.add_done_callback(_retrieve)
        try:
            await asyncio.wait({request, runner}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not request.done():
                request.cancel()
        if request.done() and not request.cancelled():
            return request.result()
        raise self._closed_error()

    def _closed_error(self) -> TransportClosedError:
        crash: BaseException | None = None
        runner = self._runner
        if runner is not None and runner.done() and not runner.cancelled():
            crash = runner.exception()
        err = TransportClosedError(f"transport to {self.config.target} closed: {_describe(crash)}")
        if crash is not None:
            err.__cause__ = root_cause(crash)
        return err


def _retrieve(future: asyncio.Future[Any]) -> None:
    # Abandoned requests may still finish with an error; mark it retrieved.
    if not future.cancelled():
        future.exception()
