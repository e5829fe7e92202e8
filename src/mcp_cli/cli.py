"""Command-line interface: registry queries and direct server connections."""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from mcp_cli import __version__, render
from mcp_cli.adapter.base import ServerAdapter
from mcp_cli.adapter.config import parse_duration
from mcp_cli.adapter.factory import DefaultAdapterFactory
from mcp_cli.config.reader import read_config, server_entry
from mcp_cli.errors import InvalidConfigError, McpCliError, ServerNotFoundError
from mcp_cli.models import TransportKind
from mcp_cli.registry.base import RegistryClientPort
from mcp_cli.registry.client import RegistryClient, resolve_base_url
from mcp_cli.shell import InteractiveShell

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def is_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


@asynccontextmanager
async def open_registry(base_url: str) -> AsyncIterator[RegistryClientPort]:
    """Registry client with a shared httpx connection pool."""
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=10.0),
        follow_redirects=True,
    ) as http_client:
        yield RegistryClient(http_client, base_url=base_url)


# ─── Registry commands ───────────────────────────────────────


async def cmd_servers(args: argparse.Namespace) -> int:
    async with open_registry(resolve_base_url(args.url)) as registry:
        page = await registry.list_servers(args.cursor, args.limit)
    logger.info("Fetched %d servers", len(page.servers))

    if not page.servers:
        print("No servers found.")
        return 0
    print(render.servers_table(page.servers))
    if page.next_cursor:
        print()
        print(f"Next cursor: {page.next_cursor}")
        print("Use --cursor flag to continue pagination")
    return 0


async def cmd_server(args: argparse.Namespace) -> int:
    identifier = args.identifier
    async with open_registry(resolve_base_url(args.url)) as registry:
        if is_uuid(identifier) and not args.name:
            logger.info("Looking up server by ID: %s", identifier)
            detail = await registry.get_server(identifier)
        elif args.show_matches:
            matches = await registry.find_servers_by_name_pattern(identifier)
            if not matches:
                print(f"No servers found matching pattern '{identifier}'")
                return 0
            print(f"Found {len(matches)} server(s) matching '{identifier}':\n")
            print(render.servers_table(matches))
            print("\nUse exact name or ID to get details")
            return 0
        else:
            logger.info("Looking up server by name: %s", identifier)
            try:
                detail = await registry.get_server_by_name(identifier)
            except ServerNotFoundError:
                matches = await registry.find_servers_by_name_pattern(identifier)
                if not matches:
                    raise ServerNotFoundError(
                        f"No servers found matching '{identifier}'"
                    ) from None
                if len(matches) > 1:
                    print(f"Multiple servers found matching '{identifier}':\n")
                    print(render.servers_table(matches))
                    print("\nUse exact name or ID to get details")
                    return 0
                logger.info("Found single match: %s", matches[0].name)
                detail = await registry.get_server(matches[0].id)

    print(render.server_details(detail))
    return 0


async def cmd_health(args: argparse.Namespace) -> int:
    async with open_registry(resolve_base_url(args.url)) as registry:
        health = await registry.health()

    print("Service Health Status")
    print("====================\n")
    print(f"Status: {health.status}")
    if health.github_client_id:
        print(f"GitHub Client ID: {health.github_client_id}")
    if health.ok:
        print("\n✓ Service is healthy and operational")
        return 0
    print("\n✗ Service health check indicates issues")
    return 1


async def cmd_ping(args: argparse.Namespace) -> int:
    async with open_registry(resolve_base_url(args.url)) as registry:
        ping = await registry.ping()

    print("Service Ping Response")
    print("====================\n")
    print(f"Status:  {ping.status}")
    print(f"Version: {ping.version}")
    if ping.ok:
        print("\n✓ Service is responding normally")
    else:
        print("\n✗ Service ping indicates issues")
    return 0


# ─── Connect ─────────────────────────────────────────────────


def build_adapter(args: argparse.Namespace, factory: DefaultAdapterFactory) -> ServerAdapter:
    """Pick the adapter source: --config entry, positional endpoint, or flags."""
    if args.config:
        if not args.server:
            raise InvalidConfigError("--server is required with --config")
        mapping = server_entry(read_config(args.config), args.server)
        mapping.setdefault("timeout", args.timeout)
        mapping["verbose"] = bool(args.verbose or mapping.get("verbose", False))
        return factory.create_from_mapping(mapping)

    if args.endpoint:
        return factory.create_from_endpoint(args.endpoint, args.verbose)

    kind = args.type
    mapping: dict[str, object] = {
        "type": kind,
        "timeout": args.timeout,
        "verbose": args.verbose,
        "env": args.env or [],
    }
    if kind == TransportKind.STDIO:
        command = args.command or ""
        arg_list = list(args.args or [])
        # A whole command line in --command with no --args is split for the user.
        if command and not arg_list and " " in command.strip():
            head, _, tail = command.strip().partition(" ")
            mapping["command"] = head
            mapping["args"] = tail
        else:
            mapping["command"] = command
            mapping["args"] = arg_list
    else:
        mapping["url"] = args.server_url or ""
    return factory.create_from_mapping(mapping)


async def show_capabilities(adapter: ServerAdapter, *, timeout: float | None) -> None:
    print("Server Capabilities:")
    print("===================")

    try:
        tools = await adapter.list_tools(timeout=timeout)
    except McpCliError as exc:
        print(f"Failed to list tools: {exc}")
    else:
        print(f"\nTools ({len(tools)} available):")
        if tools:
            rows = [[t.name, render.truncate(t.description or "", 60)] for t in tools]
            print(render.table(["NAME", "DESCRIPTION"], rows))
        else:
            print("  No tools available")

    try:
        resources = await adapter.list_resources(timeout=timeout)
    except McpCliError as exc:
        print(f"Failed to list resources: {exc}")
    else:
        print(f"\nResources ({len(resources)} available):")
        if resources:
            rows = [
                [str(r.uri), r.name, render.truncate(r.description or "", 50)]
                for r in resources
            ]
            print(render.table(["URI", "NAME", "DESCRIPTION"], rows))
        else:
            print("  No resources available")

    try:
        prompts = await adapter.list_prompts(timeout=timeout)
    except McpCliError as exc:
        print(f"Failed to list prompts: {exc}")
    else:
        print(f"\nPrompts ({len(prompts)} available):")
        if prompts:
            rows = [[p.name, render.truncate(p.description or "", 60)] for p in prompts]
            print(render.table(["NAME", "DESCRIPTION"], rows))
        else:
            print("  No prompts available")


async def cmd_connect(args: argparse.Namespace) -> int:
    adapter = build_adapter(args, DefaultAdapterFactory())
    logger.info("Connecting to MCP server using %s transport...", adapter.kind)

    await adapter.connect(timeout=args.timeout)
    try:
        info = adapter.get_server_info()
        print(f"✓ Connected to MCP server: {info.name} (version {info.version})\n")
        if args.interactive:
            await InteractiveShell(adapter, timeout=args.timeout).run()
        else:
            await show_capabilities(adapter, timeout=args.timeout)
    finally:
        try:
            await adapter.disconnect()
        except McpCliError as exc:
            logger.warning("Disconnect failed: %s", exc)
    return 0


# ─── Parser ──────────────────────────────────────────────────


def _duration(value: str) -> float:
    try:
        seconds = parse_duration(value)
    except InvalidConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    if seconds <= 0:
        raise argparse.ArgumentTypeError("timeout must be positive")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-cli",
        description="A CLI for the MCP Registry Service and for talking to MCP servers.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--url",
        default="",
        help="Base URL of the MCP Registry Service "
        "(default: $MCP_REGISTRY_URL or http://localhost:8080)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="Get registry resources")
    get_commands = get.add_subparsers(dest="resource", required=True)

    servers = get_commands.add_parser("servers", help="List all registered MCP servers")
    servers.add_argument("--limit", type=int, default=30, help="Max servers to return (1-100)")
    servers.add_argument("--cursor", default="", help="Pagination cursor")
    servers.set_defaults(handler=cmd_servers)

    server = get_commands.add_parser("server", help="Get details about one server")
    server.add_argument("identifier", help="Server ID (UUID) or name")
    server.add_argument("--name", action="store_true", help="Force lookup by name")
    server.add_argument(
        "--show-matches", action="store_true", help="List every server whose name matches"
    )
    server.set_defaults(handler=cmd_server)

    health = commands.add_parser("health", help="Check registry health")
    health.set_defaults(handler=cmd_health)

    ping = commands.add_parser("ping", help="Check registry status and version")
    ping.set_defaults(handler=cmd_ping)

    connect = commands.add_parser("connect", help="Connect to an MCP server")
    connect.add_argument(
        "endpoint",
        nargs="?",
        default="",
        help="Server URL or command line (alternative to --type/--command/--server-url)",
    )
    connect.add_argument(
        "--type",
        default=TransportKind.STDIO.value,
        choices=[k.value for k in TransportKind],
        help="Transport type",
    )
    connect.add_argument("--server-url", default="", help="Server URL for HTTP transports")
    connect.add_argument("--command", default="", help="Command to execute for stdio")
    connect.add_argument(
        "--args", action="append", metavar="ARG", help="Argument for the command (repeatable)"
    )
    connect.add_argument(
        "--env", action="append", metavar="KEY=VALUE", help="Environment variable (repeatable)"
    )
    connect.add_argument(
        "--timeout", type=_duration, default=60.0, help="Connection timeout (e.g. 60s, 2m)"
    )
    connect.add_argument("--config", default="", help="MCP client config file (mcpServers)")
    connect.add_argument("--server", default="", help="Server name inside --config")
    connect.add_argument("--interactive", action="store_true", help="Run in interactive mode")
    connect.set_defaults(handler=cmd_connect)

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        return asyncio.run(args.handler(args))
    except McpCliError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
