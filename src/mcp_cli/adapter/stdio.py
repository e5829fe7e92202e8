"""Adapter for MCP servers spawned as a local subprocess speaking stdio."""

from __future__ import annotations

from mcp_cli.adapter.base import SessionFactory, TransportSession
from mcp_cli.adapter.lifecycle import BaseAdapter
from mcp_cli.adapter.readiness import ReadinessProber
from mcp_cli.models import AdapterConfig, TransportKind


class StdioAdapter(BaseAdapter):
    """Spawn ``command args...`` and talk MCP over its stdin/stdout.

    The subprocess is probed for readiness before the initialize handshake,
    so a server that crashes on startup fails fast with
    ``ProcessUnavailableError`` instead of hanging the handshake.
    """

    kinds = (TransportKind.STDIO,)

    def __init__(
        self,
        config: AdapterConfig,
        *,
        session_factory: SessionFactory | None = None,
        prober: ReadinessProber | None = None,
    ) -> None:
        super().__init__(config, session_factory=session_factory)
        self.prober = prober or ReadinessProber(verbose=self.config.verbose)

    async def _before_handshake(self, session: TransportSession) -> None:
        await self.prober.wait_until_ready(session, label=self.target)
