"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
from mcp.types import (
    CallToolResult,
    GetPromptResult,
    Prompt,
    PromptMessage,
    ReadResourceResult,
    Resource,
    TextContent,
    TextResourceContents,
    Tool,
)

from mcp_cli.models import ServerIdentity


class FakeSession:
    """In-memory TransportSession that records every call it receives.

    ``errors`` maps a method name to the exception it raises; names in
    ``hang`` block until cancelled. ``probe_outcomes`` is consumed one entry
    per probe (None = answered) and probes succeed once it runs out.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.errors: dict[str, BaseException] = {}
        self.hang: set[str] = set()
        self.probe_outcomes: list[BaseException | None] = []
        self.close_count = 0
        self.identity = ServerIdentity(name="fake-server", version="1.2.3")
        self.tools = [Tool(name="echo", description="Echo input", inputSchema={"type": "object"})]
        self.resources = [Resource(uri="file:///notes.txt", name="notes")]
        self.prompts = [Prompt(name="greet", description="Say hello")]

    async def _step(self, name: str) -> None:
        self.calls.append(name)
        if name in self.hang:
            await asyncio.Event().wait()
        if name in self.errors:
            raise self.errors[name]

    async def open(self) -> None:
        await self._step("open")

    async def probe(self) -> None:
        await self._step("probe")
        if self.probe_outcomes:
            outcome = self.probe_outcomes.pop(0)
            if outcome is not None:
                raise outcome

    async def initialize(self) -> ServerIdentity:
        await self._step("initialize")
        return self.identity

    async def close(self) -> None:
        self.close_count += 1
        self.calls.append("close")
        if "close" in self.errors:
            raise self.errors["close"]

    async def list_tools(self) -> list[Tool]:
        await self._step("list_tools")
        return self.tools

    async def list_resources(self) -> list[Resource]:
        await self._step("list_resources")
        return self.resources

    async def list_prompts(self) -> list[Prompt]:
        await self._step("list_prompts")
        return self.prompts

    async def call_tool(self, name, arguments):
        await self._step("call_tool")
        text = f"{name}:{sorted((arguments or {}).items())}"
        return CallToolResult(content=[TextContent(type="text", text=text)])

    async def read_resource(self, uri):
        await self._step("read_resource")
        return ReadResourceResult(contents=[TextResourceContents(uri=uri, text="hello")])

    async def get_prompt(self, name, arguments):
        await self._step("get_prompt")
        text = f"{name}:{sorted((arguments or {}).items())}"
        return GetPromptResult(
            messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))]
        )


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def session_factory(fake_session: FakeSession) -> MagicMock:
    """A SessionFactory that always hands out ``fake_session``."""
    return MagicMock(return_value=fake_session)
