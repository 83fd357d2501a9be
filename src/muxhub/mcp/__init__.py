"""
MCP connectivity for muxhub.

This module provides the components for connecting to MCP servers, managing
their sessions, aggregating their tools and routing tool calls to them.
"""

from .errors import (
    HubError,
    AlreadyConnectedError,
    NotConnectedError,
    MissingCommandError,
    MissingUrlError,
    InvalidUrlError,
    UnsupportedTransportError,
    ConnectionFailedError,
    DisconnectFailedError,
    DisconnectAllError,
    ListToolsFailedError,
    InvalidPatternError,
    ToolNotFoundError,
    InvocationFailedError,
    BlueprintError,
)
from .params import (
    ConnectionParams,
    StdioParams,
    StreamableHttpParams,
    SseParams,
    resolve_connection_params,
)
from .client_session import MuxHubClientSession
from .session import BackendSession, MCPBackendSession, SessionFactory
from .registry import ConnectionRegistry
from .catalog import ToolCatalog, ToolSearch, ToolSummary, SearchError, SearchScope
from .router import ToolRouter

__all__ = [
    "HubError",
    "AlreadyConnectedError",
    "NotConnectedError",
    "MissingCommandError",
    "MissingUrlError",
    "InvalidUrlError",
    "UnsupportedTransportError",
    "ConnectionFailedError",
    "DisconnectFailedError",
    "DisconnectAllError",
    "ListToolsFailedError",
    "InvalidPatternError",
    "ToolNotFoundError",
    "InvocationFailedError",
    "BlueprintError",
    "ConnectionParams",
    "StdioParams",
    "StreamableHttpParams",
    "SseParams",
    "resolve_connection_params",
    "MuxHubClientSession",
    "BackendSession",
    "MCPBackendSession",
    "SessionFactory",
    "ConnectionRegistry",
    "ToolCatalog",
    "ToolSearch",
    "ToolSummary",
    "SearchError",
    "SearchScope",
    "ToolRouter",
]
