"""
Resolution of configured server settings into transport connection parameters.
"""

from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, ValidationError

from muxhub.config import MCPServerSettings
from muxhub.mcp.errors import (
    InvalidUrlError,
    MissingCommandError,
    MissingUrlError,
    UnsupportedTransportError,
)

TRANSPORT_ALIASES = {
    "stdio": "stdio",
    "http": "http",
    "streamable-http": "http",
    "streamable_http": "http",
    "sse": "sse",
}

_url_adapter = TypeAdapter(AnyHttpUrl)


class StdioParams(BaseModel):
    """Launch parameters for a server spawned as a child process."""

    transport: Literal["stdio"] = "stdio"
    command: str
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    read_timeout_seconds: Optional[int] = None


class StreamableHttpParams(BaseModel):
    """Parameters for a server reached over the streamable HTTP transport."""

    transport: Literal["http"] = "http"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    read_timeout_seconds: Optional[int] = None


class SseParams(BaseModel):
    """Parameters for a server reached over the legacy SSE transport."""

    transport: Literal["sse"] = "sse"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    read_timeout_seconds: Optional[int] = None


ConnectionParams = Union[StdioParams, StreamableHttpParams, SseParams]


def resolve_transport(config: MCPServerSettings) -> str:
    """
    Determine the transport of a server.

    An explicit transport wins; otherwise a command implies stdio and
    anything else is treated as streamable HTTP.
    """
    if config.transport:
        return config.transport
    return "stdio" if config.command else "http"


def resolve_connection_params(
    server_name: str,
    config: Union[MCPServerSettings, Mapping[str, Any]],
    base_env: Mapping[str, str],
) -> ConnectionParams:
    """
    Validate a server's settings and build its connection parameters.

    Args:
        server_name: The name the server is registered under.
        config: The server settings, or a plain mapping in the same shape.
        base_env: Host environment the stdio overlay is merged on top of.

    Returns:
        The connection parameters for the resolved transport.

    Raises:
        UnsupportedTransportError: If an explicit transport is not known.
        MissingCommandError: If a stdio server has no command.
        MissingUrlError: If an HTTP server has no URL.
        InvalidUrlError: If the URL is not an absolute http(s) URL.
    """
    if not isinstance(config, MCPServerSettings):
        config = MCPServerSettings.model_validate(dict(config))

    requested = resolve_transport(config)
    transport = TRANSPORT_ALIASES.get(requested.lower())
    if transport is None:
        raise UnsupportedTransportError(server_name, requested)

    if transport == "stdio":
        if not config.command:
            raise MissingCommandError(server_name)

        return StdioParams(
            command=config.command,
            args=list(config.args or []),
            env={**base_env, **(config.env or {})},
            read_timeout_seconds=config.read_timeout_seconds,
        )

    if not config.url:
        raise MissingUrlError(server_name)

    try:
        _url_adapter.validate_python(config.url)
    except ValidationError as exc:
        raise InvalidUrlError(server_name, config.url, exc) from exc

    params_type = SseParams if transport == "sse" else StreamableHttpParams
    return params_type(
        url=config.url,
        headers=dict(config.headers or {}),
        read_timeout_seconds=config.read_timeout_seconds,
    )
