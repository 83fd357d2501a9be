"""
Routing of tool calls to the server that provides them.
"""

from typing import Any, Dict, Optional

from mcp.types import CallToolResult

from muxhub.mcp.errors import InvocationFailedError
from muxhub.mcp.registry import ConnectionRegistry
from muxhub.utils.logging import get_logger

logger = get_logger(__name__)


class ToolRouter:
    """
    Forwards tool calls to connected servers.

    Arguments and results are passed through untouched: validating arguments
    against the tool's input schema is left to the server. Calls are neither
    retried nor timed out here.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def call_tool(
        self,
        server_name: str,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> CallToolResult:
        """
        Call a tool on a connected server.

        Args:
            server_name: The server providing the tool.
            tool_name: The tool's name on that server.
            arguments: Arguments to pass to the tool.

        Returns:
            The server's result, including results flagged with ``isError``.

        Raises:
            NotConnectedError: If the server is not connected.
            InvocationFailedError: If the call failed at the transport level.
        """
        async with self.registry.use(server_name) as session:
            logger.info(
                "Requesting tool call",
                data={"tool_name": tool_name, "server_name": server_name},
            )
            try:
                return await session.call_tool(tool_name, arguments or {})
            except Exception as e:
                logger.error(f"{server_name}: Failed to call tool '{tool_name}': {e}")
                raise InvocationFailedError(server_name, tool_name, e) from e
