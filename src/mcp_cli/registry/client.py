"""HTTP client for the MCP Registry Service (``/v0`` API).

Endpoints used:
    GET /v0/servers?cursor=&limit=   paginated server list
    GET /v0/servers/{id}             server detail
    GET /v0/health                   health status
    GET /v0/ping                     status + service version
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from urllib.parse import quote as urlquote

import httpx

from mcp_cli.errors import RegistryError, ServerNotFoundError
from mcp_cli.models import (
    Argument,
    EnvironmentVariable,
    Header,
    HealthStatus,
    Package,
    PingStatus,
    RegistryServer,
    Remote,
    Repository,
    ServerDetail,
    ServerPage,
    VersionDetail,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"
REGISTRY_URL_ENV = "MCP_REGISTRY_URL"

# Largest page the registry serves; used when walking every page.
_MAX_LIMIT = 100


def resolve_base_url(explicit: str = "") -> str:
    """Pick the registry base URL: explicit value, then env var, then default."""
    base = explicit or os.environ.get(REGISTRY_URL_ENV, "") or DEFAULT_BASE_URL
    return base.rstrip("/")


@dataclass
class RegistryClient:
    """Async client for the MCP Registry API."""

    http: httpx.AsyncClient
    base_url: str = DEFAULT_BASE_URL

    async def list_servers(self, cursor: str = "", limit: int = 30) -> ServerPage:
        """Fetch one page of servers.

        Args:
            cursor: Opaque cursor from a previous page's ``next_cursor``.
            limit: Page size (1-100). Non-positive values use the server default.
        """
        params: dict[str, str | int] = {}
        if cursor:
            params["cursor"] = cursor
        if limit > 0:
            params["limit"] = min(limit, _MAX_LIMIT)

        data = await self._get_json("/v0/servers", params=params, what="list servers")
        servers = [self._parse_server(raw) for raw in data.get("servers") or []]
        meta = data.get("metadata") or {}
        return ServerPage(
            servers=servers,
            next_cursor=str(meta.get("next_cursor", "") or ""),
            count=int(meta.get("count", len(servers)) or 0),
            total=int(meta.get("total", 0) or 0),
        )

    async def get_server(self, server_id: str) -> ServerDetail:
        """Fetch detailed information about a server by its ID."""
        encoded = urlquote(server_id, safe="")
        data = await self._get_json(
            f"/v0/servers/{encoded}",
            what=f"fetch server '{server_id}'",
            not_found=f"Server with ID '{server_id}' not found",
        )
        return self._parse_detail(data)

    async def get_server_by_name(self, name: str) -> ServerDetail:
        """Walk every page looking for an exact name match, then fetch its detail."""
        async for server in self._iter_servers():
            if server.name == name:
                return await self.get_server(server.id)
        raise ServerNotFoundError(f"Server with name '{name}' not found")

    async def find_servers_by_name_pattern(self, pattern: str) -> list[RegistryServer]:
        """Case-insensitive substring match on server names across all pages."""
        needle = pattern.lower()
        return [s async for s in self._iter_servers() if needle in s.name.lower()]

    async def health(self) -> HealthStatus:
        data = await self._get_json("/v0/health", what="health check")
        return HealthStatus(
            status=str(data.get("status", "")),
            github_client_id=str(data.get("github_client_id", "") or ""),
        )

    async def ping(self) -> PingStatus:
        data = await self._get_json("/v0/ping", what="ping")
        return PingStatus(
            status=str(data.get("status", "")),
            version=str(data.get("version", "") or ""),
        )

    # ── HTTP helpers ─────────────────────────────────────────────

    async def _iter_servers(self) -> AsyncIterator[RegistryServer]:
        cursor = ""
        seen: set[str] = set()
        while True:
            page = await self.list_servers(cursor, _MAX_LIMIT)
            for server in page.servers:
                yield server
            if not page.next_cursor or page.next_cursor in seen:
                return
            seen.add(page.next_cursor)
            cursor = page.next_cursor

    async def _get_json(
        self,
        path: str,
        *,
        what: str,
        params: dict[str, str | int] | None = None,
        not_found: str = "",
    ) -> dict:
        url = f"{self.base_url.rstrip('/')}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = await self.http.get(url, params=params or None)
        except httpx.HTTPError as exc:
            raise RegistryError(f"Failed to {what}: HTTP request failed: {exc}") from exc

        if response.status_code == 404 and not_found:
            raise ServerNotFoundError(not_found)
        if response.status_code != 200:
            raise RegistryError(
                f"Failed to {what}: API returned status {response.status_code}: "
                f"{response.text.strip()}"
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise RegistryError(f"Failed to {what}: failed to parse response: {exc}") from exc
        if not isinstance(data, dict):
            raise RegistryError(f"Failed to {what}: unexpected response shape")
        return data

    # ── Parsing helpers ──────────────────────────────────────────

    def _parse_server(self, raw: dict) -> RegistryServer:
        """Parse a server entry. Tolerant of missing fields."""
        repo = raw.get("repository") or {}
        version = raw.get("version_detail") or {}
        return RegistryServer(
            id=str(raw.get("id", "")),
            name=str(raw.get("name", "")),
            description=str(raw.get("description", "") or ""),
            repository=Repository(
                url=str(repo.get("url", "") or ""),
                source=str(repo.get("source", "") or ""),
                id=str(repo.get("id", "") or ""),
            ),
            version_detail=VersionDetail(
                version=str(version.get("version", "") or ""),
                release_date=str(version.get("release_date", "") or ""),
                is_latest=bool(version.get("is_latest", False)),
            ),
        )

    def _parse_detail(self, raw: dict) -> ServerDetail:
        """Parse a detail response: server fields inline plus packages/remotes."""
        return ServerDetail(
            server=self._parse_server(raw),
            packages=[self._parse_package(p) for p in raw.get("packages") or []],
            remotes=[self._parse_remote(r) for r in raw.get("remotes") or []],
        )

    def _parse_package(self, raw: dict) -> Package:
        return Package(
            registry_name=str(raw.get("registry_name", "")),
            name=str(raw.get("name", "")),
            version=str(raw.get("version", "") or ""),
            runtime_hint=str(raw.get("runtime_hint", "") or ""),
            runtime_arguments=[self._parse_argument(a) for a in raw.get("runtime_arguments") or []],
            package_arguments=[self._parse_argument(a) for a in raw.get("package_arguments") or []],
            environment_variables=[
                EnvironmentVariable(
                    name=str(ev.get("name", "")),
                    description=str(ev.get("description", "") or ""),
                    is_required=bool(ev.get("is_required", False)),
                    is_secret=bool(ev.get("is_secret", False)),
                    default=str(ev.get("default", "") or ""),
                )
                for ev in raw.get("environment_variables") or []
            ],
        )

    @staticmethod
    def _parse_argument(raw: dict) -> Argument:
        return Argument(
            type=str(raw.get("type", "positional") or "positional"),
            name=str(raw.get("name", "") or ""),
            description=str(raw.get("description", "") or ""),
            is_required=bool(raw.get("is_required", False)),
            default=str(raw.get("default", "") or ""),
            value_hint=str(raw.get("value_hint", "") or ""),
        )

    @staticmethod
    def _parse_remote(raw: dict) -> Remote:
        return Remote(
            transport_type=str(raw.get("transport_type", "")),
            url=str(raw.get("url", "")),
            headers=[
                Header(
                    name=str(h.get("name", "") or ""),
                    value=str(h.get("value", "") or ""),
                    description=str(h.get("description", "") or ""),
                )
                for h in raw.get("headers") or []
            ],
        )
