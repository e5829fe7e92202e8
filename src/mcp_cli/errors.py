"""Exception hierarchy for mcp-cli.

All exceptions inherit from McpCliError (single catch point).
Transport failures are always chained (``raise ... from exc``) and carry
the operation and target they happened on, so the CLI can print them as-is.
"""

from __future__ import annotations


class McpCliError(Exception):
    """Base exception for all mcp-cli errors."""


# ─── Configuration ────────────────────────────────────────────


class InvalidConfigError(McpCliError):
    """A required adapter config field is missing or malformed."""


class UnsupportedKindError(InvalidConfigError):
    """The transport discriminator is not one of the supported kinds."""


class InvalidEndpointError(InvalidConfigError):
    """An endpoint string is empty or cannot be split into a command."""


class ConfigReadError(McpCliError):
    """Error reading an MCP server config file."""


# ─── Adapter state ────────────────────────────────────────────


class AdapterStateError(McpCliError):
    """Operation is not valid in the adapter's current connection state."""


class AlreadyConnectedError(AdapterStateError):
    """connect() was called on an adapter that is already connected."""


class NotConnectedError(AdapterStateError):
    """A capability operation was issued before connect()."""


# ─── Connection ───────────────────────────────────────────────


class ConnectError(McpCliError):
    """Establishing the connection to an MCP server failed."""


class SessionOpenError(ConnectError):
    """The transport session (subprocess or HTTP channel) could not be opened."""


class ProcessUnavailableError(ConnectError):
    """The server subprocess exited before it became ready."""


class ProcessNotReadyError(ConnectError):
    """The server subprocess never answered a readiness probe."""


class HandshakeFailedError(ConnectError):
    """The initialize handshake failed or timed out."""


# ─── Operations ───────────────────────────────────────────────


class OperationFailedError(McpCliError):
    """A capability call failed at the transport or protocol layer."""

    def __init__(self, operation: str, target: str, cause: BaseException | str) -> None:
        self.operation = operation
        self.target = target
        super().__init__(f"{operation} failed for {target}: {cause}")


class OperationCancelledError(McpCliError):
    """The caller's deadline expired while an operation was in flight."""

    def __init__(self, operation: str, target: str, timeout: float | None = None) -> None:
        self.operation = operation
        self.target = target
        self.timeout = timeout
        detail = f" after {timeout:g}s" if timeout is not None else ""
        super().__init__(f"{operation} cancelled for {target}: deadline exceeded{detail}")


# ─── Registry ─────────────────────────────────────────────────


class RegistryError(McpCliError):
    """Error communicating with the MCP Registry API."""


class ServerNotFoundError(RegistryError):
    """No registry entry matches the requested ID or name."""
