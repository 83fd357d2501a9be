"""
Tests for bootstrapping the registry from blueprints and server files.
"""

import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from muxhub.bootstrap import (
    BootstrapLoader,
    fetch_blueprint_config,
    find_blueprint_id,
    load_servers_file,
)
from muxhub.config import MCPServerSettings
from muxhub.mcp.errors import BlueprintError

from conftest import STDIO

pytestmark = pytest.mark.anyio

BLUEPRINT = {
    "mcpServers": {
        "fs": {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-filesystem"]},
        "remote": {"type": "http", "url": "https://example.com/mcp", "headers": {"X-Key": "k"}},
    }
}


@pytest.fixture
async def blueprint_api():
    requests = []

    async def handler(request):
        blueprint_id = request.query.get("blueprint_id")
        requests.append(blueprint_id)
        if blueprint_id == "missing":
            return web.json_response({"error": "not found"}, status=404)
        if blueprint_id == "malformed":
            return web.json_response({"servers": {}})
        if blueprint_id == "empty":
            return web.json_response({"mcpServers": {}})
        return web.json_response(BLUEPRINT)

    app = web.Application()
    app.router.add_get("/api/blueprint-servers", handler)

    async with TestServer(app) as server:
        server.requests = requests
        server.api_url = str(server.make_url("/api/blueprint-servers"))
        yield server


def test_blueprint_id_from_environment_wins():
    argv = ["muxhub", "--blueprint-id", "from-argv"]
    assert find_blueprint_id(argv, {"MCP_BLUEPRINT_ID": "from-env"}) == "from-env"


def test_blueprint_id_from_argv():
    assert find_blueprint_id(["muxhub", "--blueprint-id", "bp-1"], {}) == "bp-1"


def test_blueprint_id_flag_without_value():
    assert find_blueprint_id(["muxhub", "--blueprint-id"], {}) is None


def test_no_blueprint_id():
    assert find_blueprint_id(["muxhub"], {}) is None


async def test_fetch_blueprint(blueprint_api):
    config = await fetch_blueprint_config("bp-1", blueprint_api.api_url)

    assert blueprint_api.requests == ["bp-1"]
    assert list(config.mcp_servers) == ["fs", "remote"]
    assert config.mcp_servers["remote"].transport == "http"
    assert config.mcp_servers["remote"].headers == {"X-Key": "k"}


async def test_fetch_blueprint_http_error(blueprint_api):
    with pytest.raises(BlueprintError) as exc_info:
        await fetch_blueprint_config("missing", blueprint_api.api_url)

    assert "404" in str(exc_info.value)
    assert exc_info.value.blueprint_id == "missing"


async def test_fetch_blueprint_without_servers_key(blueprint_api):
    with pytest.raises(BlueprintError) as exc_info:
        await fetch_blueprint_config("malformed", blueprint_api.api_url)

    assert "missing mcpServers" in str(exc_info.value)


async def test_load_blueprint_connects_servers_in_order(blueprint_api, registry, factory):
    loader = BootstrapLoader(registry, api_url=blueprint_api.api_url)

    report = await loader.load_blueprint("bp-1")

    assert report.connected == ["fs", "remote"]
    assert report.failed == {}
    assert registry.list_servers() == ["fs", "remote"]
    assert factory.latest("remote").params.headers == {"X-Key": "k"}


async def test_load_empty_blueprint(blueprint_api, registry):
    loader = BootstrapLoader(registry, api_url=blueprint_api.api_url)

    report = await loader.load_blueprint("empty")

    assert report.connected == []
    assert registry.list_servers() == []


async def test_connect_all_skips_connected_and_records_failures(registry, factory):
    factory.add("broken", open_error=OSError("spawn failed"))
    await registry.connect("fs", STDIO)
    loader = BootstrapLoader(registry)

    report = await loader.connect_all({
        "fs": MCPServerSettings(command="npx"),
        "broken": MCPServerSettings(command="npx"),
        "nocommand": MCPServerSettings(transport="stdio"),
        "web": MCPServerSettings(url="https://example.com/mcp"),
    })

    assert report.skipped == ["fs"]
    assert report.connected == ["web"]
    assert set(report.failed) == {"broken", "nocommand"}
    assert "spawn failed" in report.failed["broken"]
    assert registry.list_servers() == ["fs", "web"]


async def test_load_servers_file(tmp_path, registry):
    path = tmp_path / "servers.json"
    path.write_text(json.dumps(BLUEPRINT))

    report = await BootstrapLoader(registry).load_file(str(path))

    assert report.connected == ["fs", "remote"]


def test_load_servers_yaml_file(tmp_path):
    path = tmp_path / "servers.yaml"
    path.write_text("mcpServers:\n  git:\n    command: uvx\n    args: [mcp-server-git]\n")

    config = load_servers_file(str(path))

    assert config.mcp_servers["git"].args == ["mcp-server-git"]


def test_load_servers_file_without_servers(tmp_path):
    path = tmp_path / "servers.yaml"
    path.write_text("servers: {}\n")

    with pytest.raises(BlueprintError):
        load_servers_file(str(path))


def test_load_servers_file_with_invalid_server(tmp_path):
    path = tmp_path / "servers.json"
    path.write_text(json.dumps({"mcpServers": {"fs": {"args": "not-a-list"}}}))

    with pytest.raises(BlueprintError) as exc_info:
        load_servers_file(str(path))

    assert "fs" in str(exc_info.value)


def test_load_servers_file_with_broken_yaml(tmp_path):
    path = tmp_path / "servers.yaml"
    path.write_text("mcpServers: [unclosed\n")

    with pytest.raises(BlueprintError) as exc_info:
        load_servers_file(str(path))

    assert "Failed to parse" in str(exc_info.value)
