"""Build the right server adapter from typed, loose, or endpoint-string config."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from dataclasses import replace

from mcp_cli.adapter.base import ServerAdapter, SessionFactory
from mcp_cli.adapter.config import (
    HTTP_KINDS,
    coerce_kind,
    config_from_mapping,
    validate_config,
)
from mcp_cli.adapter.http import HttpAdapter
from mcp_cli.adapter.lifecycle import BaseAdapter
from mcp_cli.adapter.stdio import StdioAdapter
from mcp_cli.errors import InvalidEndpointError
from mcp_cli.models import DEFAULT_TIMEOUT, AdapterConfig, TransportKind

logger = logging.getLogger(__name__)


def supported_kinds() -> list[TransportKind]:
    return list(TransportKind)


def create_adapter(
    kind: TransportKind | str,
    config: AdapterConfig,
    *,
    session_factory: SessionFactory | None = None,
) -> BaseAdapter:
    """Validate ``config`` for ``kind`` and build the matching adapter.

    A zero timeout is replaced by the default before validation; anything
    else invalid raises before any I/O happens.

    Raises:
        UnsupportedKindError: unknown ``kind``.
        InvalidConfigError: ``config`` is not valid for ``kind``.
    """
    kind = coerce_kind(kind)
    config = replace(config, kind=kind)
    if config.timeout == 0:
        config = replace(config, timeout=DEFAULT_TIMEOUT)
    validate_config(kind, config)

    if kind is TransportKind.STDIO:
        return StdioAdapter(config, session_factory=session_factory)
    if kind in HTTP_KINDS:
        return HttpAdapter(config, session_factory=session_factory)
    raise AssertionError(f"unhandled transport kind {kind}")  # pragma: no cover


def create_from_mapping(
    raw: Mapping[str, object],
    *,
    session_factory: SessionFactory | None = None,
) -> BaseAdapter:
    """Build an adapter from a loosely typed mapping (e.g. parsed JSON).

    See ``config_from_mapping`` for the recognised keys and coercions.
    """
    config = config_from_mapping(raw)
    return create_adapter(config.kind, config, session_factory=session_factory)


def create_from_endpoint(
    endpoint: str,
    verbose: bool = False,
    *,
    session_factory: SessionFactory | None = None,
) -> BaseAdapter:
    """Build an adapter from a URL or a shell-style command line.

    ``http://`` / ``https://`` strings become an HTTP adapter; anything else
    is split with ``shlex`` into command and arguments for a stdio adapter.
    """
    text = (endpoint or "").strip()
    if text.startswith(("http://", "https://")):
        config = AdapterConfig(kind=TransportKind.HTTP, url=text, verbose=verbose)
        return create_adapter(TransportKind.HTTP, config, session_factory=session_factory)

    try:
        parts = shlex.split(text)
    except ValueError as exc:
        raise InvalidEndpointError(f"Invalid command: {endpoint!r} ({exc})") from exc
    if not parts:
        raise InvalidEndpointError(f"Invalid command: {endpoint!r}")

    config = AdapterConfig(
        kind=TransportKind.STDIO,
        command=parts[0],
        args=tuple(parts[1:]),
        verbose=verbose,
    )
    logger.debug("Endpoint %r parsed as command %r args %r", endpoint, config.command, config.args)
    return create_adapter(TransportKind.STDIO, config, session_factory=session_factory)


class DefaultAdapterFactory:
    """Adapter for AdapterFactoryPort."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory

    def create(self, kind: TransportKind | str, config: AdapterConfig) -> ServerAdapter:
        return create_adapter(kind, config, session_factory=self._session_factory)

    def create_from_mapping(self, raw: Mapping[str, object]) -> ServerAdapter:
        return create_from_mapping(raw, session_factory=self._session_factory)

    def create_from_endpoint(self, endpoint: str, verbose: bool = False) -> ServerAdapter:
        return create_from_endpoint(endpoint, verbose, session_factory=self._session_factory)

    def validate(self, kind: TransportKind | str, config: AdapterConfig) -> None:
        validate_config(kind, config)

    def supported_kinds(self) -> list[TransportKind]:
        return supported_kinds()
