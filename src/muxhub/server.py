"""
MCP front end exposing the hub's operations as tools.

A client connected to this server can connect and disconnect MCP servers,
browse and search their tools, and call them through the hub.
"""

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from muxhub.app import MuxHubApp
from muxhub.config import MCPServerSettings
from muxhub.mcp.catalog import SearchScope, ToolSearch
from muxhub.mcp.errors import DisconnectAllError
from muxhub.utils.logging import get_logger

logger = get_logger(__name__)


class HubTools:
    """
    The hub operations in the shape the front end exposes them.

    Results are plain JSON-compatible structures. Hub errors propagate and are
    reported to the client as tool errors.
    """

    def __init__(self, app: MuxHubApp):
        self.app = app

    async def connect_server(
        self,
        server_name: str,
        command: Optional[str] = None,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = MCPServerSettings(
            transport=transport,
            command=command,
            args=args,
            env=env,
            url=url,
            headers=headers,
        )
        await self.app.registry.connect(server_name, params)
        return {"message": f"Successfully connected to server '{server_name}'."}

    async def disconnect_server(self, server_name: Optional[str] = None) -> Dict[str, Any]:
        if server_name:
            await self.app.registry.disconnect(server_name)
            return {"message": f"Successfully disconnected from server '{server_name}'."}

        try:
            await self.app.registry.disconnect_all()
        except DisconnectAllError as e:
            return {
                "message": "Disconnected from all servers, some did not close cleanly.",
                "errors": {name: str(error) for name, error in e.failures.items()},
            }
        return {"message": "Successfully disconnected from all servers."}

    async def list_servers(self) -> Dict[str, Any]:
        return {"servers": self.app.registry.list_servers()}

    async def list_tools(self, server_name: str) -> Dict[str, Any]:
        tools = await self.app.catalog.list_tools(server_name)
        return {"tools": [tool.model_dump(exclude_none=True) for tool in tools]}

    async def get_tool(self, server_name: str, tool_name: str) -> Dict[str, Any]:
        tool = await self.app.catalog.get_tool(server_name, tool_name)
        return tool.model_dump(exclude_none=True)

    async def list_tools_in_server(self, server_name: str) -> Dict[str, Any]:
        summaries = await self.app.catalog.list_tool_summaries(server_name)
        return {"tools": [summary.model_dump() for summary in summaries]}

    async def find_tools(
        self,
        pattern: str,
        search_in: str = SearchScope.BOTH.value,
        case_sensitive: bool = False,
        server_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        search = ToolSearch(
            pattern=pattern,
            search_in=SearchScope(search_in),
            case_sensitive=case_sensitive,
        )
        found = await self.app.catalog.search(search, server_name=server_name)

        if isinstance(found, list):
            return {"tools": [summary.model_dump() for summary in found]}
        return {
            "servers": {
                name: [entry.model_dump() for entry in entries]
                for name, entries in found.items()
            }
        }

    async def call_tool(
        self,
        server_name: str,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        result = await self.app.router.call_tool(server_name, tool_name, arguments)
        return result.model_dump(exclude_none=True)


def build_server(app: MuxHubApp, name: str = "muxhub") -> FastMCP:
    """
    Build the FastMCP server for a running application.

    Args:
        app: The initialized application the tools operate on.
        name: Name the server reports to its clients.
    """
    server = FastMCP(name)
    tools = HubTools(app)

    @server.tool()
    async def connect_server(
        server_name: str,
        command: Optional[str] = None,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Connect to an MCP server.

        Give a command (and args/env) to spawn a stdio server, or a url (and
        headers) to reach an HTTP server. type is "stdio", "http" or "sse" and
        is inferred when omitted.
        """
        return await tools.connect_server(
            server_name, command=command, args=args, env=env,
            url=url, headers=headers, transport=type,
        )

    @server.tool()
    async def disconnect_server(server_name: Optional[str] = None) -> Dict[str, Any]:
        """Disconnect from a server, or from all servers when no name is given."""
        return await tools.disconnect_server(server_name)

    @server.tool()
    async def list_servers() -> Dict[str, Any]:
        """List the names of all connected servers, in connect order."""
        return await tools.list_servers()

    @server.tool()
    async def list_tools(server_name: str) -> Dict[str, Any]:
        """List the tools of a connected server with their full schemas."""
        return await tools.list_tools(server_name)

    @server.tool()
    async def get_tool(server_name: str, tool_name: str) -> Dict[str, Any]:
        """Get one tool of a connected server with its full schema."""
        return await tools.get_tool(server_name, tool_name)

    @server.tool()
    async def list_tools_in_server(server_name: str) -> Dict[str, Any]:
        """List the names and descriptions of a server's tools."""
        return await tools.list_tools_in_server(server_name)

    @server.tool()
    async def find_tools(
        pattern: str,
        search_in: str = "both",
        case_sensitive: bool = False,
        server_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Find tools whose name and/or description match a regular expression.

        search_in is "name", "description" or "both". Searches every connected
        server unless server_name is given.
        """
        return await tools.find_tools(
            pattern, search_in=search_in, case_sensitive=case_sensitive,
            server_name=server_name,
        )

    @server.tool()
    async def call_tool(
        server_name: str,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Call a tool on a connected server."""
        return await tools.call_tool(server_name, tool_name, arguments)

    logger.debug(f"Built front end server '{name}'")
    return server
