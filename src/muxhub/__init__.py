"""
muxhub - a connection hub routing tool calls to MCP servers.
"""

__version__ = "0.1.0"

# Configuration
from muxhub.config import load_config, Settings, MCPServerSettings

# MCP connectivity
from muxhub.mcp.registry import ConnectionRegistry
from muxhub.mcp.catalog import ToolCatalog, ToolSearch, ToolSummary, SearchError, SearchScope
from muxhub.mcp.router import ToolRouter
from muxhub.mcp.session import BackendSession, MCPBackendSession
from muxhub.mcp.errors import HubError

# Application
from muxhub.bootstrap import BootstrapLoader, BootstrapReport
from muxhub.app import MuxHubApp

__all__ = [
    "load_config",
    "Settings",
    "MCPServerSettings",
    "ConnectionRegistry",
    "ToolCatalog",
    "ToolSearch",
    "ToolSummary",
    "SearchError",
    "SearchScope",
    "ToolRouter",
    "BackendSession",
    "MCPBackendSession",
    "HubError",
    "BootstrapLoader",
    "BootstrapReport",
    "MuxHubApp",
]
