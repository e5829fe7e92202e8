"""Adapter configuration: validation and coercion from loosely typed input.

Loose input is what comes out of JSON config files or CLI flags: strings
for durations, ``KEY=VALUE`` lists for env, a single string for args.
Everything is normalised into an ``AdapterConfig`` or rejected with an
``InvalidConfigError`` that names the offending field.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping
from datetime import timedelta

from mcp_cli.errors import InvalidConfigError, UnsupportedKindError
from mcp_cli.models import (
    DEFAULT_TIMEOUT,
    TRANSPORT_ALIASES,
    AdapterConfig,
    TransportKind,
)

HTTP_KINDS = (TransportKind.HTTP, TransportKind.STREAMABLE)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|us|µs|ns|h|m|s)")
_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


def coerce_kind(value: object) -> TransportKind:
    """Map a discriminator string onto a TransportKind."""
    if isinstance(value, TransportKind):
        return value
    if not isinstance(value, str) or not value.strip():
        raise UnsupportedKindError(f"Unsupported adapter type: {value!r}")
    raw = value.strip().lower()
    if raw in TRANSPORT_ALIASES:
        return TRANSPORT_ALIASES[raw]
    try:
        return TransportKind(raw)
    except ValueError:
        supported = ", ".join(k.value for k in TransportKind)
        raise UnsupportedKindError(
            f"Unsupported adapter type: {value!r}. Supported types: {supported}"
        ) from None


def parse_duration(value: object, *, field: str = "timeout") -> float:
    """Parse a duration into seconds.

    Accepts numbers (seconds), ``timedelta``, numeric strings, and
    Go-style unit strings such as ``"30s"``, ``"1m30s"`` or ``"500ms"``.
    """
    if isinstance(value, bool):
        raise InvalidConfigError(f"'{field}' must be a duration, got a boolean")
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, int | float):
        return float(value)
    if not isinstance(value, str):
        raise InvalidConfigError(
            f"'{field}' must be a duration, got {type(value).__name__}"
        )

    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass

    sign = -1.0 if text.startswith("-") else 1.0
    body = text.lstrip("+-")
    parts = _DURATION_PART_RE.findall(body)
    if not body or "".join(num + unit for num, unit in parts) != body:
        raise InvalidConfigError(
            f"Invalid duration for '{field}': {value!r}. Use e.g. '30s', '1m30s' or '500ms'."
        )
    return sign * sum(float(num) * _DURATION_UNITS[unit] for num, unit in parts)


def validate_config(kind: TransportKind | str, config: AdapterConfig) -> None:
    """Check that ``config`` is usable for ``kind`` without building anything.

    Raises:
        UnsupportedKindError: ``kind`` is not a known transport.
        InvalidConfigError: a required field is missing, both command and
            URL are set, the URL scheme is not http(s), or the timeout is
            not positive.
    """
    kind = coerce_kind(kind)

    if kind is TransportKind.STDIO:
        if not config.command.strip():
            raise InvalidConfigError("command is required for stdio adapter")
        if config.url:
            raise InvalidConfigError(
                "stdio adapter takes a command, not a URL "
                f"(got url={config.url!r})"
            )
    else:
        if not config.url.strip():
            raise InvalidConfigError("server URL is required for HTTP adapter")
        if not config.url.startswith(("http://", "https://")):
            raise InvalidConfigError("server URL must start with http:// or https://")
        if config.command:
            raise InvalidConfigError(
                "HTTP adapter takes a URL, not a command "
                f"(got command={config.command!r})"
            )

    if config.timeout <= 0:
        raise InvalidConfigError(f"timeout must be positive (got {config.timeout:g}s)")


def config_from_mapping(raw: Mapping[str, object]) -> AdapterConfig:
    """Build an AdapterConfig from a weakly typed mapping.

    Recognised keys: ``type`` (required), ``command``, ``args``, ``env``,
    ``url``, ``timeout``, ``verbose``. Unknown keys are ignored.
    """
    if not isinstance(raw, Mapping):
        raise InvalidConfigError(
            f"adapter config must be a mapping, got {type(raw).__name__}"
        )
    if "type" not in raw:
        raise InvalidConfigError("adapter type is required")
    kind = coerce_kind(raw["type"])

    timeout = DEFAULT_TIMEOUT
    if raw.get("timeout") not in (None, ""):
        timeout = parse_duration(raw["timeout"]) or DEFAULT_TIMEOUT

    verbose = raw.get("verbose", False)
    if not isinstance(verbose, bool):
        raise InvalidConfigError(f"'verbose' must be a boolean, got {type(verbose).__name__}")

    if kind is TransportKind.STDIO:
        command = raw.get("command")
        if not isinstance(command, str) or not command.strip():
            raise InvalidConfigError("command is required for stdio adapter")
        return AdapterConfig(
            kind=kind,
            command=command,
            args=_coerce_args(raw.get("args")),
            env=_coerce_env(raw.get("env")),
            timeout=timeout,
            verbose=verbose,
        )

    url = raw.get("url")
    if not isinstance(url, str) or not url.strip():
        raise InvalidConfigError("URL is required for HTTP adapter")
    return AdapterConfig(kind=kind, url=url.strip(), timeout=timeout, verbose=verbose)


def _coerce_args(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        try:
            return tuple(shlex.split(value))
        except ValueError as exc:
            raise InvalidConfigError(f"Cannot parse 'args' {value!r}: {exc}") from exc
    if isinstance(value, list | tuple):
        if not all(isinstance(item, str | int | float) for item in value):
            raise InvalidConfigError("'args' must be a list of strings")
        return tuple(str(item) for item in value)
    raise InvalidConfigError(f"'args' must be a list of strings, got {type(value).__name__}")


def _coerce_env(value: object) -> dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        env: dict[str, str] = {}
        for item in value:
            if not isinstance(item, str) or "=" not in item:
                raise InvalidConfigError(
                    f"'env' entries must look like KEY=VALUE, got {item!r}"
                )
            key, _, val = item.partition("=")
            env[key] = val
        return env
    raise InvalidConfigError(
        f"'env' must be a mapping or a list of KEY=VALUE strings, got {type(value).__name__}"
    )
