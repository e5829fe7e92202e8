"""Adapter for MCP servers reachable over streamable HTTP."""

from __future__ import annotations

from mcp_cli.adapter.lifecycle import BaseAdapter
from mcp_cli.models import TransportKind


class HttpAdapter(BaseAdapter):
    """Connect to an MCP endpoint URL.

    ``http`` and ``streamable`` both use the streamable HTTP transport; there
    is no process to probe, so the handshake runs as soon as the channel opens.
    """

    kinds = (TransportKind.HTTP, TransportKind.STREAMABLE)
