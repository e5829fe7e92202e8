"""mcp-cli: browse the MCP Registry and talk to MCP servers over stdio or HTTP.

``mcp_cli.registry`` queries a registry service; ``mcp_cli.adapter`` holds
the transport adapters used by ``mcp-cli connect``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _distribution_version

DISTRIBUTION = "mcp-cli"

# Reported when running from a source tree that was never installed.
_LOCAL_VERSION_FALLBACK = "0.0.0+local"


def _resolve_version() -> str:
    try:
        return _distribution_version(DISTRIBUTION)
    except PackageNotFoundError:
        return _LOCAL_VERSION_FALLBACK


__version__ = _resolve_version()


def main() -> None:
    """Console script: run the CLI and exit with its status code."""
    from mcp_cli.cli import main as run

    raise SystemExit(run())
