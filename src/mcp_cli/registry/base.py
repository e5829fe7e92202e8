"""Port: MCP Registry API client."""

from __future__ import annotations

from typing import Protocol

from mcp_cli.models import HealthStatus, PingStatus, RegistryServer, ServerDetail, ServerPage


class RegistryClientPort(Protocol):
    """Port for querying the MCP server registry."""

    async def list_servers(self, cursor: str = "", limit: int = 30) -> ServerPage:
        """Fetch one page of registered servers."""
        ...

    async def get_server(self, server_id: str) -> ServerDetail:
        """Fetch full details for a server by registry ID."""
        ...

    async def get_server_by_name(self, name: str) -> ServerDetail:
        """Fetch full details for the server whose name matches exactly."""
        ...

    async def find_servers_by_name_pattern(self, pattern: str) -> list[RegistryServer]:
        """List every server whose name contains ``pattern`` (case-insensitive)."""
        ...

    async def health(self) -> HealthStatus: ...

    async def ping(self) -> PingStatus: ...
