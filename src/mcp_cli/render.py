"""Plain-text rendering of registry records and MCP results for the terminal."""

from __future__ import annotations

from collections.abc import Sequence

from mcp.types import (
    AudioContent,
    BlobResourceContents,
    CallToolResult,
    EmbeddedResource,
    GetPromptResult,
    ImageContent,
    ReadResourceResult,
    TextContent,
    TextResourceContents,
)

from mcp_cli.models import Argument, RegistryServer, ServerDetail


def truncate(text: str, width: int) -> str:
    text = " ".join((text or "").split())
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def table(headers: Sequence[str], rows: Sequence[Sequence[str]], *, indent: str = "") -> str:
    """Left-aligned columns separated by two spaces, tabwriter style."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def fmt(cells: Sequence[str]) -> str:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(cells)]
        return (indent + "  ".join(padded)).rstrip()

    lines = [fmt(headers), fmt(["-" * len(h) for h in headers])]
    lines.extend(fmt(row) for row in rows)
    return "\n".join(lines)


# ─── Registry ────────────────────────────────────────────────


def servers_table(servers: Sequence[RegistryServer]) -> str:
    rows = [
        [s.id, s.name, s.version_detail.version, truncate(s.description, 50)]
        for s in servers
    ]
    return table(["ID", "NAME", "VERSION", "DESCRIPTION"], rows)


def _arguments_table(arguments: Sequence[Argument]) -> str:
    rows = [
        [a.type, a.name, "Yes" if a.is_required else "No", a.default, a.description]
        for a in arguments
    ]
    return table(["TYPE", "NAME", "REQUIRED", "DEFAULT", "DESCRIPTION"], rows, indent="     ")


def server_details(detail: ServerDetail) -> str:
    s = detail.server
    lines = [
        "Server Details",
        "==============",
        "",
        f"ID:           {s.id}",
        f"Name:         {s.name}",
        f"Description:  {s.description}",
        f"Version:      {s.version_detail.version}",
        f"Release Date: {s.version_detail.release_date}",
        f"Is Latest:    {str(s.version_detail.is_latest).lower()}",
        "",
        "Repository",
        "----------",
        f"URL:    {s.repository.url}",
        f"Source: {s.repository.source}",
    ]
    if s.repository.id:
        lines.append(f"ID:     {s.repository.id}")

    if detail.packages:
        lines += ["", "Packages", "--------"]
        for i, pkg in enumerate(detail.packages, start=1):
            lines.append(f"{i}. {pkg.name} ({pkg.registry_name})")
            lines.append(f"   Version: {pkg.version}")
            if pkg.runtime_hint:
                lines.append(f"   Runtime Hint: {pkg.runtime_hint}")
            if pkg.package_arguments:
                lines.append("   Package Arguments:")
                lines.append(_arguments_table(pkg.package_arguments))
            if pkg.runtime_arguments:
                lines.append("   Runtime Arguments:")
                lines.append(_arguments_table(pkg.runtime_arguments))
            if pkg.environment_variables:
                lines.append("   Environment Variables:")
                rows = [
                    [ev.name, "Yes" if ev.is_required else "No", ev.description]
                    for ev in pkg.environment_variables
                ]
                lines.append(table(["NAME", "REQUIRED", "DESCRIPTION"], rows, indent="     "))

    if detail.remotes:
        lines += ["", "Remote Connections", "------------------"]
        for i, remote in enumerate(detail.remotes, start=1):
            lines.append(f"{i}. Transport: {remote.transport_type}")
            lines.append(f"   URL: {remote.url}")
            if remote.headers:
                lines.append("   Headers:")
                lines.extend(
                    f"     {h.name or h.value}: {h.description}" for h in remote.headers
                )
    return "\n".join(lines)


# ─── MCP results ─────────────────────────────────────────────


def tool_result(result: CallToolResult) -> str:
    lines = ["Tool error:" if result.isError else "Tool result:"]
    for i, content in enumerate(result.content, start=1):
        if isinstance(content, TextContent):
            lines.extend(f"  {line}" for line in content.text.splitlines() if line.strip())
        elif isinstance(content, ImageContent):
            lines.append(f"  Image ({content.mimeType}): [base64 data - {len(content.data)} bytes]")
        elif isinstance(content, AudioContent):
            lines.append(f"  Audio ({content.mimeType}): [base64 data - {len(content.data)} bytes]")
        elif isinstance(content, EmbeddedResource):
            lines.append(f"  Resource: {content.resource.uri}")
        else:
            lines.append(f"  Content {i}: {content!r}")
    if result.structuredContent:
        lines.append(f"  Structured: {result.structuredContent}")
    return "\n".join(lines)


def resource_result(result: ReadResourceResult) -> str:
    lines = ["Resource content:"]
    for content in result.contents:
        if isinstance(content, TextResourceContents):
            lines.append(f"  Text ({content.mimeType or 'text/plain'}): {content.text}")
        elif isinstance(content, BlobResourceContents):
            lines.append(f"  Blob ({content.mimeType or 'application/octet-stream'}): "
                         f"[base64 data - {len(content.blob)} bytes]")
        else:
            lines.append(f"  Content: {content!r}")
    return "\n".join(lines)


def prompt_result(result: GetPromptResult) -> str:
    lines = [f"Prompt: {result.description}" if result.description else "Prompt:"]
    for message in result.messages:
        content = message.content
        text = content.text if isinstance(content, TextContent) else repr(content)
        lines.append(f"  [{message.role}] {text}")
    return "\n".join(lines)
