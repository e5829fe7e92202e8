"""Interactive shell for exploring a connected MCP server."""

from __future__ import annotations

import asyncio
import json
import shlex
import sys
from typing import Any, TextIO

from mcp_cli import render
from mcp_cli.adapter.base import ServerAdapter
from mcp_cli.errors import McpCliError

HELP = """
Available commands:
  help                               - Show this help message
  info                               - Show the connected server's identity
  tools                              - List available tools
  resources                          - List available resources
  prompts                            - List available prompts
  call <tool> [key=value ... | JSON] - Call a tool with arguments
  read <uri>                         - Read a resource
  prompt <name> [key=value ...]      - Get a prompt
  quit, exit                         - Exit interactive mode
"""


class ArgumentSyntaxError(ValueError):
    """Shell arguments are neither key=value pairs nor a JSON object."""


def parse_tool_arguments(text: str) -> dict[str, Any]:
    """Parse ``key=value`` pairs or one JSON object into tool arguments.

    Values that are valid JSON (numbers, booleans, lists...) are decoded;
    anything else is kept as a string.
    """
    text = text.strip()
    if not text:
        return {}
    if text.startswith("{"):
        try:
            value = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArgumentSyntaxError(f"Invalid JSON arguments: {exc}") from exc
        return value

    arguments: dict[str, Any] = {}
    for token in _split(text):
        key, sep, raw = token.partition("=")
        if not sep or not key:
            raise ArgumentSyntaxError(
                f"Expected key=value, got {token!r} (or pass a JSON object)"
            )
        try:
            arguments[key] = json.loads(raw)
        except json.JSONDecodeError:
            arguments[key] = raw
    return arguments


def parse_prompt_arguments(text: str) -> dict[str, str]:
    arguments: dict[str, str] = {}
    for token in _split(text):
        key, sep, value = token.partition("=")
        if not sep or not key:
            raise ArgumentSyntaxError(f"Expected key=value, got {token!r}")
        arguments[key] = value
    return arguments


def _split(text: str) -> list[str]:
    try:
        return shlex.split(text)
    except ValueError as exc:
        raise ArgumentSyntaxError(f"Cannot parse arguments: {exc}") from exc


class InteractiveShell:
    """Read-eval-print loop over a connected adapter.

    Operation failures are printed and the loop continues; the connection
    stays open until ``quit`` or end of input.
    """

    def __init__(
        self,
        adapter: ServerAdapter,
        *,
        timeout: float | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.adapter = adapter
        self.timeout = timeout
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def _print(self, text: str = "") -> None:
        print(text, file=self.stdout)

    async def run(self) -> None:
        self._print("Interactive Mode - Type 'help' for available commands")
        self._print("====================================================")
        while True:
            self.stdout.write("> ")
            self.stdout.flush()
            line = await asyncio.to_thread(self.stdin.readline)
            if not line:
                break
            if not await self.handle(line):
                return

    async def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the shell should exit."""
        head, _, rest = line.strip().partition(" ")
        command = head.lower()
        if not command:
            return True
        if command in ("quit", "exit"):
            self._print("Goodbye!")
            return False

        handler = {
            "help": self._help,
            "info": self._info,
            "tools": self._tools,
            "resources": self._resources,
            "prompts": self._prompts,
            "call": self._call,
            "read": self._read,
            "prompt": self._prompt,
        }.get(command)
        if handler is None:
            self._print(f"Unknown command: {command} (type 'help' for available commands)")
            return True

        try:
            await handler(rest.strip())
        except (McpCliError, ArgumentSyntaxError) as exc:
            self._print(f"Error: {exc}")
        return True

    async def _help(self, _: str) -> None:
        self._print(HELP)

    async def _info(self, _: str) -> None:
        info = self.adapter.get_server_info()
        self._print(f"Connected to {info.name} (version {info.version})")

    async def _tools(self, _: str) -> None:
        tools = await self.adapter.list_tools(timeout=self.timeout)
        if not tools:
            self._print("No tools available")
            return
        self._print(f"Available tools ({len(tools)}):")
        for i, tool in enumerate(tools, start=1):
            self._print(f"{i}. {tool.name} - {tool.description or ''}")

    async def _resources(self, _: str) -> None:
        resources = await self.adapter.list_resources(timeout=self.timeout)
        if not resources:
            self._print("No resources available")
            return
        self._print(f"Available resources ({len(resources)}):")
        for i, resource in enumerate(resources, start=1):
            self._print(f"{i}. {resource.uri} ({resource.name}) - {resource.description or ''}")

    async def _prompts(self, _: str) -> None:
        prompts = await self.adapter.list_prompts(timeout=self.timeout)
        if not prompts:
            self._print("No prompts available")
            return
        self._print(f"Available prompts ({len(prompts)}):")
        for i, prompt in enumerate(prompts, start=1):
            self._print(f"{i}. {prompt.name} - {prompt.description or ''}")

    async def _call(self, rest: str) -> None:
        name, _, raw_args = rest.partition(" ")
        if not name:
            self._print("Usage: call <tool-name> [key=value ... | JSON]")
            return
        arguments = parse_tool_arguments(raw_args)
        result = await self.adapter.call_tool(name, arguments, timeout=self.timeout)
        self._print(render.tool_result(result))

    async def _read(self, rest: str) -> None:
        if not rest or " " in rest:
            self._print("Usage: read <resource-uri>")
            return
        result = await self.adapter.read_resource(rest, timeout=self.timeout)
        self._print(render.resource_result(result))

    async def _prompt(self, rest: str) -> None:
        name, _, raw_args = rest.partition(" ")
        if not name:
            self._print("Usage: prompt <name> [key=value ...]")
            return
        arguments = parse_prompt_arguments(raw_args)
        result = await self.adapter.get_prompt(name, arguments, timeout=self.timeout)
        self._print(render.prompt_result(result))
