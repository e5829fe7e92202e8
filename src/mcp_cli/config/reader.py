"""Read MCP server definitions from client config files.

Config files follow: { "mcpServers": { "<name>": { ... } } }
Each entry is returned as a loose mapping suitable for
``create_from_mapping``; nothing here talks to a server.
"""

from __future__ import annotations

import json
from pathlib import Path

from mcp_cli.errors import ConfigReadError


def read_config(config_path: Path | str) -> dict[str, object]:
    """Read a full MCP client config file.

    Unlike a config writer we never create the file: a missing file is an
    error the user has to fix.
    """
    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigReadError(f"Config file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except PermissionError as exc:
        raise ConfigReadError(f"Permission denied reading {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigReadError(f"Cannot read {path}: {exc}") from exc

    if not text.strip():
        return {"mcpServers": {}}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigReadError(f"Invalid JSON in {path}: {exc}. Fix the JSON syntax.") from exc
    if not isinstance(data, dict):
        raise ConfigReadError(f"Expected a JSON object at the top of {path}")
    data.setdefault("mcpServers", {})
    return data


def server_names(raw_config: dict[str, object]) -> list[str]:
    servers = raw_config.get("mcpServers", {})
    if not isinstance(servers, dict):
        return []
    return [name for name, entry in servers.items() if isinstance(entry, dict)]


def server_entry(raw_config: dict[str, object], name: str) -> dict[str, object]:
    """Return the loose adapter mapping for server ``name``.

    ``type`` defaults to ``stdio``, or to ``http`` when the entry only has a
    ``url``; ``sse`` entries are mapped onto the HTTP adapter.
    """
    servers = raw_config.get("mcpServers", {})
    entry = servers.get(name) if isinstance(servers, dict) else None
    if not isinstance(entry, dict):
        available = ", ".join(server_names(raw_config)) or "none"
        raise ConfigReadError(f"Server '{name}' not found in config (available: {available})")

    mapping = dict(entry)
    entry_type = str(mapping.get("type", "") or "")
    if not entry_type:
        entry_type = "http" if "url" in mapping and "command" not in mapping else "stdio"
    elif entry_type == "sse":
        entry_type = "http"
    mapping["type"] = entry_type
    return mapping
