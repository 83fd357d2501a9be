"""
Bootstrap of the registry from a remote blueprint or a local servers file.

A blueprint is a server configuration published by the blueprint API, in the
same ``{"mcpServers": {...}}`` shape as a local servers file.
"""

import os
import sys
from typing import Dict, List, Mapping, Optional, Sequence

import aiohttp
import yaml
from pydantic import BaseModel, Field, ValidationError

from muxhub.config import MCPServerSettings
from muxhub.config.settings import DEFAULT_BLUEPRINT_API_URL
from muxhub.mcp.errors import BlueprintError, HubError
from muxhub.mcp.registry import ConnectionRegistry
from muxhub.utils.logging import get_logger

logger = get_logger(__name__)

BLUEPRINT_ID_ENV = "MCP_BLUEPRINT_ID"
BLUEPRINT_ID_ARG = "--blueprint-id"


class ServersConfig(BaseModel):
    """A set of server definitions keyed by server name."""

    mcp_servers: Dict[str, MCPServerSettings] = Field(alias="mcpServers")

    model_config = {"populate_by_name": True}


class BootstrapReport(BaseModel):
    """Outcome of connecting a batch of configured servers."""

    connected: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)


def find_blueprint_id(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Find the blueprint id in the environment or the command line.

    ``MCP_BLUEPRINT_ID`` takes precedence over ``--blueprint-id <id>``.

    Args:
        argv: Command line arguments. Defaults to sys.argv.
        environ: Environment to read. Defaults to os.environ.
    """
    environ = os.environ if environ is None else environ
    if environ.get(BLUEPRINT_ID_ENV):
        return environ[BLUEPRINT_ID_ENV]

    argv = list(sys.argv if argv is None else argv)
    if BLUEPRINT_ID_ARG in argv:
        index = argv.index(BLUEPRINT_ID_ARG)
        if index < len(argv) - 1:
            return argv[index + 1]

    return None


async def fetch_blueprint_config(
    blueprint_id: str,
    api_url: str = DEFAULT_BLUEPRINT_API_URL,
    http_session: Optional[aiohttp.ClientSession] = None,
) -> ServersConfig:
    """
    Fetch a blueprint's server configuration from the blueprint API.

    Args:
        blueprint_id: The blueprint to fetch.
        api_url: The blueprint API endpoint.
        http_session: Session to reuse. A temporary one is used if omitted.

    Raises:
        BlueprintError: If the request fails or the response is not a valid
            server configuration.
    """
    if http_session is None:
        async with aiohttp.ClientSession() as session:
            return await fetch_blueprint_config(blueprint_id, api_url, session)

    try:
        async with http_session.get(
            api_url,
            params={"blueprint_id": blueprint_id},
            headers={"Content-Type": "application/json"},
        ) as response:
            if response.status != 200:
                raise BlueprintError(
                    f"Failed to fetch configuration for blueprint '{blueprint_id}': "
                    f"HTTP error! status: {response.status}",
                    blueprint_id,
                )
            data = await response.json(content_type=None)
    except (aiohttp.ClientError, ValueError) as e:
        raise BlueprintError(
            f"Failed to fetch configuration for blueprint '{blueprint_id}': {e}",
            blueprint_id,
        ) from e

    if not isinstance(data, dict) or "mcpServers" not in data:
        raise BlueprintError(
            f"Failed to fetch configuration for blueprint '{blueprint_id}': "
            "Invalid configuration format: missing mcpServers",
            blueprint_id,
        )

    try:
        return ServersConfig.model_validate(data)
    except ValidationError as e:
        raise BlueprintError(
            f"Invalid configuration for blueprint '{blueprint_id}': {e}",
            blueprint_id,
        ) from e


def load_servers_file(path: str) -> ServersConfig:
    """
    Load server definitions from a local JSON or YAML file.

    Raises:
        BlueprintError: If the file cannot be parsed or is not a valid server
            configuration.
    """
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise BlueprintError(f"Failed to parse '{path}': {e}") from e

    if not isinstance(data, dict) or "mcpServers" not in data:
        raise BlueprintError(f"Invalid configuration format in '{path}': missing mcpServers")

    try:
        return ServersConfig.model_validate(data)
    except ValidationError as e:
        raise BlueprintError(f"Invalid configuration in '{path}': {e}") from e


class BootstrapLoader:
    """
    Connects the registry to every server of a configuration.

    Servers are connected one by one in configuration order, so the registry
    lists them in that order. A server that fails to connect is logged and
    recorded; the remaining servers are still connected.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        api_url: str = DEFAULT_BLUEPRINT_API_URL,
    ):
        self.registry = registry
        self.api_url = api_url

    async def connect_all(
        self, servers: Mapping[str, MCPServerSettings]
    ) -> BootstrapReport:
        """
        Connect every server not connected yet.

        Args:
            servers: Server settings keyed by server name.

        Returns:
            Which servers were connected, skipped or failed (with the reason).
        """
        report = BootstrapReport()

        for server_name, server_config in servers.items():
            if self.registry.is_connected(server_name):
                logger.debug(f"{server_name}: Already connected, skipping")
                report.skipped.append(server_name)
                continue

            try:
                await self.registry.connect(server_name, server_config)
            except HubError as e:
                logger.error(f"Failed to connect to server '{server_name}' from configuration: {e}")
                report.failed[server_name] = str(e)
            else:
                report.connected.append(server_name)

        return report

    async def load_blueprint(self, blueprint_id: str) -> BootstrapReport:
        """
        Fetch a blueprint and connect to all of its servers.

        Raises:
            BlueprintError: If the blueprint could not be fetched.
        """
        logger.info(f"Loading servers from blueprint '{blueprint_id}'...")
        config = await fetch_blueprint_config(blueprint_id, self.api_url)

        if not config.mcp_servers:
            logger.warning("No server information in blueprint configuration.")
            return BootstrapReport()

        return await self.connect_all(config.mcp_servers)

    async def load_file(self, path: str) -> BootstrapReport:
        """
        Connect to all servers defined in a local servers file.
        """
        logger.info(f"Loading servers from '{path}'...")
        return await self.connect_all(load_servers_file(path).mcp_servers)
