"""Domain models for mcp-cli. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

DEFAULT_TIMEOUT = 30.0

# ─── Enumerations ─────────────────────────────────────────────


class TransportKind(StrEnum):
    STDIO = "stdio"
    HTTP = "http"
    STREAMABLE = "streamable"


# Spellings accepted from loose config on top of the enum values.
TRANSPORT_ALIASES: dict[str, TransportKind] = {
    "local-process": TransportKind.STDIO,
    "streamable-http": TransportKind.STREAMABLE,
}


# ─── Adapter Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class AdapterConfig:
    """Immutable configuration captured when an adapter is built.

    ``command``/``args``/``env`` apply to stdio, ``url`` to the HTTP kinds.
    ``env`` is overlaid on the default subprocess environment.
    ``timeout`` (seconds) bounds the initialize handshake only.
    """

    kind: TransportKind = TransportKind.STDIO
    command: str = ""
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    verbose: bool = False

    @property
    def target(self) -> str:
        """Human-readable endpoint used in logs and error messages."""
        if self.kind is TransportKind.STDIO:
            return " ".join([self.command, *self.args]).strip()
        return self.url


@dataclass(frozen=True, slots=True)
class ServerIdentity:
    """Name and version a server reports in its initialize response."""

    name: str
    version: str = ""


# ─── Registry Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Repository:
    url: str = ""
    source: str = ""
    id: str = ""


@dataclass(frozen=True, slots=True)
class VersionDetail:
    version: str = ""
    release_date: str = ""
    is_latest: bool = False


@dataclass(frozen=True, slots=True)
class RegistryServer:
    """A server entry as listed by the registry."""

    id: str
    name: str
    description: str = ""
    repository: Repository = field(default_factory=Repository)
    version_detail: VersionDetail = field(default_factory=VersionDetail)


@dataclass(frozen=True, slots=True)
class Argument:
    """A runtime or package argument declared by a registry package."""

    type: str = "positional"
    name: str = ""
    description: str = ""
    is_required: bool = False
    default: str = ""
    value_hint: str = ""


@dataclass(frozen=True, slots=True)
class EnvironmentVariable:
    name: str
    description: str = ""
    is_required: bool = False
    is_secret: bool = False
    default: str = ""


@dataclass(frozen=True, slots=True)
class Package:
    """A distributable package of a registry server (npm, pypi, docker...)."""

    registry_name: str
    name: str
    version: str = ""
    runtime_hint: str = ""
    runtime_arguments: list[Argument] = field(default_factory=list)
    package_arguments: list[Argument] = field(default_factory=list)
    environment_variables: list[EnvironmentVariable] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Header:
    name: str = ""
    value: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class Remote:
    """A hosted endpoint of a registry server."""

    transport_type: str
    url: str
    headers: list[Header] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ServerDetail:
    """Full registry record for a single server."""

    server: RegistryServer
    packages: list[Package] = field(default_factory=list)
    remotes: list[Remote] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ServerPage:
    """One page of ``/v0/servers``. Empty ``next_cursor`` means last page."""

    servers: list[RegistryServer] = field(default_factory=list)
    next_cursor: str = ""
    count: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class HealthStatus:
    status: str
    github_client_id: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True, slots=True)
class PingStatus:
    status: str
    version: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"
