"""
Integration tests against a real MCP server spawned over stdio.
"""

import os
import sys
from pathlib import Path

import anyio
import pytest

from muxhub.mcp.catalog import SearchScope, ToolCatalog, ToolSearch
from muxhub.mcp.errors import ConnectionFailedError, NotConnectedError
from muxhub.mcp.registry import ConnectionRegistry
from muxhub.mcp.router import ToolRouter

pytestmark = pytest.mark.anyio

NOTES_SERVER = Path(__file__).parent / "servers" / "notes_server.py"


@pytest.fixture
async def live_registry():
    async with ConnectionRegistry(base_env=os.environ) as registry:
        yield registry


async def test_stdio_server_roundtrip(live_registry):
    await live_registry.connect("notes", {"command": sys.executable, "args": [str(NOTES_SERVER)]})
    catalog = ToolCatalog(live_registry)
    router = ToolRouter(live_registry)

    names = [tool.name for tool in await catalog.list_tools("notes")]
    assert set(names) == {"read_note", "list_notes", "add"}

    found = await catalog.search(ToolSearch(pattern="^read", search_in=SearchScope.NAME), "notes")
    assert [summary.name for summary in found] == ["read_note"]

    result = await router.call_tool("notes", "add", {"a": 2, "b": 3})
    assert not result.isError
    assert result.content[0].text == "5"

    await live_registry.disconnect("notes")
    assert live_registry.list_servers() == []
    with pytest.raises(NotConnectedError):
        await router.call_tool("notes", "add", {"a": 1, "b": 1})


async def test_unknown_command_fails_to_connect(live_registry):
    with pytest.raises(ConnectionFailedError):
        await live_registry.connect(
            "nowhere", {"command": "muxhub-test-command-that-does-not-exist"}
        )

    assert live_registry.list_servers() == []


async def test_cancelled_connect_does_not_block_shutdown():
    silent_server = {"command": sys.executable, "args": ["-c", "import time; time.sleep(60)"]}

    with anyio.fail_after(15):
        async with ConnectionRegistry(base_env=os.environ) as registry:
            with anyio.move_on_after(1) as scope:
                await registry.connect("silent", silent_server)

            assert scope.cancelled_caught
            assert registry.list_servers() == []

            # The name is free again once the abandoned attempt is cancelled
            with pytest.raises(ConnectionFailedError):
                await registry.connect(
                    "silent", {"command": "muxhub-test-command-that-does-not-exist"}
                )
