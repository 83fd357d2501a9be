"""
Main application class for muxhub.
"""

from contextlib import asynccontextmanager
from typing import Mapping, Optional

from muxhub.bootstrap import BootstrapLoader, BootstrapReport, find_blueprint_id
from muxhub.config.settings import Settings, load_config
from muxhub.mcp.catalog import ToolCatalog
from muxhub.mcp.errors import BlueprintError
from muxhub.mcp.registry import ConnectionRegistry
from muxhub.mcp.router import ToolRouter
from muxhub.mcp.session import SessionFactory
from muxhub.utils.logging import configure_logging_from_settings, get_logger


class MuxHubApp:
    """
    Application object wiring the registry, catalog and router together.

    Example usage:
        app = MuxHubApp(config_path="muxhub.config.yaml")

        async with app.run() as running_app:
            print(running_app.registry.list_servers())
            result = await running_app.router.call_tool("fs", "read_file", {"path": "a.txt"})
    """

    def __init__(
        self,
        name: str = "muxhub",
        config_path: Optional[str] = None,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the application.

        Args:
            name: Name of the application.
            config_path: Path to configuration file (if not provided, looks for muxhub.config.yaml).
            settings: Application configuration object (if provided, takes precedence over config_path).
            session_factory: Builds server sessions; see ConnectionRegistry.
            base_env: Host environment for spawned servers; see ConnectionRegistry.
        """
        self.name = name
        self._config_path = config_path
        self._settings = settings
        self._session_factory = session_factory
        self._base_env = base_env

        self._logger = None
        self._registry: Optional[ConnectionRegistry] = None
        self._catalog: Optional[ToolCatalog] = None
        self._router: Optional[ToolRouter] = None
        self._bootstrap: Optional[BootstrapLoader] = None
        self._initialized = False

    @property
    def config(self) -> Settings:
        """Get the current application configuration."""
        if self._settings is None:
            self._settings = load_config(self._config_path)
        return self._settings

    @property
    def registry(self) -> ConnectionRegistry:
        return self._require(self._registry)

    @property
    def catalog(self) -> ToolCatalog:
        return self._require(self._catalog)

    @property
    def router(self) -> ToolRouter:
        return self._require(self._router)

    @property
    def bootstrap(self) -> BootstrapLoader:
        return self._require(self._bootstrap)

    @property
    def logger(self):
        """Get the application logger."""
        if self._logger is None:
            self._logger = get_logger(f"muxhub.{self.name}")
        return self._logger

    async def initialize(self):
        """
        Initialize the application and connect the configured servers.

        Servers listed in the configuration are connected first, then the
        blueprint's servers when a blueprint id is configured. Servers that fail
        to connect are logged and do not prevent startup.
        """
        if self._initialized:
            return

        config = self.config
        configure_logging_from_settings(config.logging)

        registry = ConnectionRegistry(
            session_factory=self._session_factory,
            base_env=self._base_env,
        )
        await registry.__aenter__()

        self._registry = registry
        self._catalog = ToolCatalog(registry)
        self._router = ToolRouter(registry)
        self._bootstrap = BootstrapLoader(registry, api_url=config.blueprint.api_url)
        self._initialized = True

        if config.mcp.auto_connect and config.mcp.servers:
            await self._bootstrap.connect_all(config.mcp.servers)

        blueprint_id = config.blueprint.id or find_blueprint_id()
        if config.blueprint.auto_load and blueprint_id:
            try:
                await self._bootstrap.load_blueprint(blueprint_id)
            except BlueprintError as e:
                self.logger.error(f"Failed to load servers from blueprint: {e}")

        self.logger.info(
            f"MuxHubApp initialized - app_name: {self.name}, servers: {registry.list_servers()}"
        )

    async def load_blueprint(self, blueprint_id: Optional[str] = None) -> BootstrapReport:
        """
        Connect to the servers of a blueprint.

        Args:
            blueprint_id: The blueprint to load. Defaults to the configured one.

        Raises:
            BlueprintError: If no blueprint id is known or it cannot be fetched.
        """
        blueprint_id = blueprint_id or self.config.blueprint.id or find_blueprint_id()
        if not blueprint_id:
            raise BlueprintError("Blueprint ID not specified.")
        return await self.bootstrap.load_blueprint(blueprint_id)

    async def cleanup(self):
        """Disconnect all servers and release the registry."""
        if not self._initialized:
            return

        self.logger.info(f"MuxHubApp cleaning up - app_name: {self.name}")

        registry, self._registry = self._registry, None
        try:
            # Exiting the registry disconnects every server and logs failures
            await registry.__aexit__(None, None, None)
        finally:
            self._catalog = None
            self._router = None
            self._bootstrap = None
            self._initialized = False

    @asynccontextmanager
    async def run(self):
        """
        Run the application as an async context manager.

        Yields:
            The initialized application instance.
        """
        await self.initialize()
        try:
            yield self
        finally:
            await self.cleanup()

    def _require(self, component):
        if component is None:
            raise RuntimeError(
                "MuxHubApp not initialized. Please call initialize() first, or use async with app.run()."
            )
        return component
