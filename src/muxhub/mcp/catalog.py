"""
Tool catalog spanning every connected MCP server.

Listings are never cached: every call re-queries the live session.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Union

from anyio import create_task_group
from pydantic import BaseModel
from mcp.types import Tool

from muxhub.mcp.errors import (
    InvalidPatternError,
    ListToolsFailedError,
    NotConnectedError,
    ToolNotFoundError,
)
from muxhub.mcp.registry import ConnectionRegistry
from muxhub.utils.logging import get_logger

logger = get_logger(__name__)


class SearchScope(str, Enum):
    NAME = "name"
    DESCRIPTION = "description"
    BOTH = "both"


class ToolSearch(BaseModel):
    """
    A regular expression search over tool names and/or descriptions.
    """

    pattern: str
    search_in: SearchScope = SearchScope.BOTH
    case_sensitive: bool = False

    def compile(self) -> Pattern[str]:
        """
        Raises:
            InvalidPatternError: If the pattern is not a valid regular expression.
        """
        flags = 0 if self.case_sensitive else re.IGNORECASE
        try:
            return re.compile(self.pattern, flags)
        except re.error as e:
            raise InvalidPatternError(self.pattern, e) from e


class ToolSummary(BaseModel):
    """A tool reduced to its name and description."""

    name: str
    description: Optional[str] = None


class SearchError(BaseModel):
    """Stands in for a server whose tools could not be listed during a search."""

    error: str


SearchResults = Dict[str, List[Union[ToolSummary, SearchError]]]


def _extract_tools(listing: Any) -> List[Tool]:
    """
    Pull the tool list out of a listing result, tolerating unexpected shapes.
    """
    if isinstance(listing, dict):
        tools = listing.get("tools")
    else:
        tools = getattr(listing, "tools", None)
    return list(tools) if isinstance(tools, (list, tuple)) else []


def _summarize(tool: Tool) -> Optional[ToolSummary]:
    name = getattr(tool, "name", None)
    if not isinstance(name, str):
        return None
    return ToolSummary(name=name, description=getattr(tool, "description", None))


def _matches(tool: Tool, regex: Pattern[str], search_in: SearchScope) -> bool:
    name = getattr(tool, "name", None)
    description = getattr(tool, "description", None)

    if search_in != SearchScope.DESCRIPTION and name and regex.search(name):
        return True
    if search_in != SearchScope.NAME and description and regex.search(description):
        return True
    return False


class ToolCatalog:
    """
    Aggregates the tool listings of the servers in a registry.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def list_tools(self, server_name: str) -> List[Tool]:
        """
        Return the full tool descriptors a server reports.

        Args:
            server_name: The server to query.

        Returns:
            The tools, including their input schemas, as reported.

        Raises:
            NotConnectedError: If the server is not connected.
            ListToolsFailedError: If the listing request failed.
        """
        async with self.registry.use(server_name) as session:
            try:
                listing = await session.list_tools()
            except Exception as e:
                logger.error(f"{server_name}: Error listing tools: {e}")
                raise ListToolsFailedError(server_name, e) from e

        tools = _extract_tools(listing)
        logger.debug(f"{server_name}: Listed tools", data={"tools_count": len(tools)})
        return tools

    async def list_tool_summaries(self, server_name: str) -> List[ToolSummary]:
        """
        Return the name and description of every tool a server reports.
        """
        tools = await self.list_tools(server_name)
        return [summary for summary in map(_summarize, tools) if summary is not None]

    async def get_tool(self, server_name: str, tool_name: str) -> Tool:
        """
        Return the full descriptor of one tool.

        The name must match exactly; if a server reports duplicates, the first
        one wins.

        Raises:
            NotConnectedError: If the server is not connected.
            ToolNotFoundError: If the server reports no tool of that name.
        """
        for tool in await self.list_tools(server_name):
            if getattr(tool, "name", None) == tool_name:
                return tool
        raise ToolNotFoundError(server_name, tool_name)

    async def search(
        self, search: ToolSearch, server_name: Optional[str] = None
    ) -> Union[List[ToolSummary], SearchResults]:
        """
        Find tools matching a pattern.

        Args:
            search: The pattern and where to look for it.
            server_name: Restrict the search to one server. When given, a plain
                list is returned; otherwise results are keyed by server.

        Raises:
            InvalidPatternError: If the pattern does not compile. No server is
                queried in that case.
        """
        if server_name is not None:
            return await self.find_tools_in_server(server_name, search)
        return await self.find_tools(search)

    async def find_tools_in_server(
        self, server_name: str, search: ToolSearch
    ) -> List[ToolSummary]:
        """
        Find the tools of one server matching a pattern.

        Raises:
            InvalidPatternError: If the pattern does not compile.
            NotConnectedError: If the server is not connected.
            ListToolsFailedError: If the listing request failed.
        """
        regex = search.compile()
        tools = await self.list_tools(server_name)
        return self._matching_summaries(tools, regex, search.search_in)

    async def find_tools(self, search: ToolSearch) -> SearchResults:
        """
        Find matching tools across all connected servers.

        Servers are queried concurrently and reported in connect order. A
        server without matches is left out. A server whose listing fails is
        reported as a single SearchError entry instead of failing the search.

        Raises:
            InvalidPatternError: If the pattern does not compile.
        """
        regex = search.compile()
        server_names = self.registry.list_servers()
        found: SearchResults = {}

        async def search_server(server_name: str) -> None:
            try:
                tools = await self.list_tools(server_name)
            except NotConnectedError:
                logger.debug(f"{server_name}: Disconnected during search, skipping")
                return
            except ListToolsFailedError as e:
                found[server_name] = [
                    SearchError(error=f"Failed to search tools: {e.cause}")
                ]
                return

            matches = self._matching_summaries(tools, regex, search.search_in)
            if matches:
                found[server_name] = matches

        async with create_task_group() as tg:
            for server_name in server_names:
                tg.start_soon(search_server, server_name)

        return {name: found[name] for name in server_names if name in found}

    @staticmethod
    def _matching_summaries(
        tools: List[Tool], regex: Pattern[str], search_in: SearchScope
    ) -> List[ToolSummary]:
        return [
            summary
            for summary in (_summarize(tool) for tool in tools if _matches(tool, regex, search_in))
            if summary is not None
        ]
