"""
Shared fixtures: fake server sessions injected through the registry's
session factory.
"""

from typing import Any, Dict, List, Optional

import anyio
import pytest
from mcp.types import CallToolResult, ListToolsResult, TextContent, Tool

from muxhub.mcp.registry import ConnectionRegistry


def make_tool(name: str, description: Optional[str] = None, schema: Optional[dict] = None) -> Tool:
    return Tool(
        name=name,
        description=description,
        inputSchema=schema or {"type": "object", "properties": {}},
    )


class FakeBackend:
    """Behaviour of one fake server, configured by a test."""

    def __init__(
        self,
        tools: Optional[List[Tool]] = None,
        open_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
        list_error: Optional[Exception] = None,
        call_error: Optional[Exception] = None,
        listing: Any = None,
    ):
        self.tools = tools or []
        self.open_error = open_error
        self.close_error = close_error
        self.list_error = list_error
        self.call_error = call_error
        self.listing = listing
        # Set by tests that need a call to block until released
        self.call_started: Optional[anyio.Event] = None
        self.call_release: Optional[anyio.Event] = None


class FakeSession:
    def __init__(self, server_name: str, params, backend: FakeBackend):
        self.server_name = server_name
        self.params = params
        self.backend = backend
        self.opened = False
        self.closed = False
        self.close_calls = 0
        self.list_calls = 0
        self.calls: List[tuple] = []

    async def open(self, task_group) -> None:
        if self.backend.open_error is not None:
            raise self.backend.open_error
        self.opened = True

    async def list_tools(self):
        self.list_calls += 1
        if self.closed:
            raise RuntimeError(f"{self.server_name}: Session is closed.")
        if self.backend.list_error is not None:
            raise self.backend.list_error
        if self.backend.listing is not None:
            return self.backend.listing
        return ListToolsResult(tools=list(self.backend.tools))

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        self.calls.append((name, arguments))
        if self.backend.call_started is not None:
            self.backend.call_started.set()
            await self.backend.call_release.wait()
        if self.closed:
            raise RuntimeError(f"{self.server_name}: Session is closed.")
        if self.backend.call_error is not None:
            raise self.backend.call_error
        return CallToolResult(
            content=[TextContent(type="text", text=f"{self.server_name}:{name}:{arguments}")]
        )

    async def close(self) -> None:
        self.closed = True
        self.close_calls += 1
        if self.backend.close_error is not None:
            raise self.backend.close_error


class FakeSessionFactory:
    """Session factory handing out FakeSessions for configured backends."""

    def __init__(self):
        self.backends: Dict[str, FakeBackend] = {}
        self.sessions: List[FakeSession] = []

    def add(self, server_name: str, **behaviour) -> FakeBackend:
        backend = self.backends[server_name] = FakeBackend(**behaviour)
        return backend

    def __call__(self, server_name: str, params) -> FakeSession:
        backend = self.backends.setdefault(server_name, FakeBackend())
        session = FakeSession(server_name, params, backend)
        self.sessions.append(session)
        return session

    def latest(self, server_name: str) -> FakeSession:
        return [s for s in self.sessions if s.server_name == server_name][-1]


STDIO = {"command": "fake-server", "args": ["--stdio"]}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def factory():
    return FakeSessionFactory()


@pytest.fixture
async def registry(factory):
    async with ConnectionRegistry(session_factory=factory, base_env={"PATH": "/usr/bin"}) as registry:
        yield registry
