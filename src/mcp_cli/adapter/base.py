"""Ports: transport sessions and the uniform server adapter surface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from mcp.types import (
    CallToolResult,
    GetPromptResult,
    Prompt,
    ReadResourceResult,
    Resource,
    Tool,
)

from mcp_cli.models import AdapterConfig, ServerIdentity, TransportKind


class TransportSession(Protocol):
    """One live channel to an MCP server (subprocess pipes or HTTP).

    Owned by exactly one adapter. ``close()`` must be safe to call on a
    session whose ``open()`` failed part way, and more than once.
    """

    async def open(self) -> None:
        """Launch the subprocess or open the HTTP channel."""
        ...

    async def probe(self) -> None:
        """Cheap liveness exchange that does not count as the handshake."""
        ...

    async def initialize(self) -> ServerIdentity:
        """Run the versioned initialize handshake and return the server identity.

        The client identity is fixed when the session is constructed.
        """
        ...

    async def list_tools(self) -> list[Tool]: ...

    async def list_resources(self) -> list[Resource]: ...

    async def list_prompts(self) -> list[Prompt]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult: ...

    async def read_resource(self, uri: str) -> ReadResourceResult: ...

    async def get_prompt(self, name: str, arguments: dict[str, str] | None) -> GetPromptResult: ...

    async def close(self) -> None: ...


SessionFactory = Callable[[AdapterConfig], TransportSession]


class ServerAdapter(Protocol):
    """Uniform client-side view of an MCP server, whatever the transport.

    Every coroutine accepts ``timeout`` (seconds); expiry raises
    ``OperationCancelledError``. Capability calls raise
    ``NotConnectedError`` before ``connect()``.
    """

    kind: TransportKind
    config: AdapterConfig

    @property
    def is_connected(self) -> bool: ...

    async def connect(self, *, timeout: float | None = None) -> None: ...

    async def disconnect(self) -> None: ...

    def get_server_info(self) -> ServerIdentity: ...

    async def list_tools(self, *, timeout: float | None = None) -> list[Tool]: ...

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> CallToolResult: ...

    async def list_resources(self, *, timeout: float | None = None) -> list[Resource]: ...

    async def read_resource(self, uri: str, *, timeout: float | None = None) -> ReadResourceResult: ...

    async def list_prompts(self, *, timeout: float | None = None) -> list[Prompt]: ...

    async def get_prompt(
        self,
        name: str,
        arguments: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> GetPromptResult: ...


class AdapterFactoryPort(Protocol):
    """Port for building adapters from typed, loose, or endpoint-string config."""

    def create(self, kind: TransportKind | str, config: AdapterConfig) -> ServerAdapter: ...

    def create_from_mapping(self, raw: dict[str, object]) -> ServerAdapter: ...

    def create_from_endpoint(self, endpoint: str, verbose: bool = False) -> ServerAdapter: ...

    def validate(self, kind: TransportKind | str, config: AdapterConfig) -> None: ...
