"""
Registry of live MCP server sessions.

The registry maps server names to their sessions and owns their lifecycle.
Connect and disconnect for a name are exclusive; listing and calling tools on
a name may run concurrently with each other but never alongside a connect or
disconnect of that same name.
"""

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Mapping, Optional, Union

from anyio import CancelScope, Condition, create_task_group
from anyio.abc import TaskGroup

from muxhub.config import MCPServerSettings
from muxhub.mcp.errors import (
    AlreadyConnectedError,
    ConnectionFailedError,
    DisconnectAllError,
    DisconnectFailedError,
    NotConnectedError,
)
from muxhub.mcp.params import ConnectionParams, resolve_connection_params
from muxhub.mcp.session import BackendSession, MCPBackendSession, SessionFactory
from muxhub.utils.logging import get_logger

logger = get_logger(__name__)


class _SlotLock:
    """
    Reader/writer lock guarding one server name.

    Waiting writers block new readers, so a disconnect is not starved by a
    steady stream of tool calls. ``users`` counts the callers holding or
    waiting on the lock; the registry drops the lock once it reaches zero.
    """

    def __init__(self):
        self._condition = Condition()
        self.users = 0
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def reading(self) -> AsyncGenerator[None, None]:
        async with self._condition:
            while self._writing or self._writers_waiting:
                await self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with CancelScope(shield=True):
                async with self._condition:
                    self._readers -= 1
                    self._condition.notify_all()

    @asynccontextmanager
    async def writing(self) -> AsyncGenerator[None, None]:
        async with self._condition:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    await self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with CancelScope(shield=True):
                async with self._condition:
                    self._writing = False
                    self._condition.notify_all()


class ConnectionRegistry:
    """
    Manages the lifecycle of the hub's MCP server sessions.

    Must be entered (``async with``) before connecting: the sessions' lifecycle
    tasks run in a task group owned by the registry.

    Example:
        async with ConnectionRegistry() as registry:
            await registry.connect("fs", {"command": "npx", "args": [...]})
            print(registry.list_servers())
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the registry.

        Args:
            session_factory: Builds a session from a server name and its
                connection parameters. Defaults to MCPBackendSession.
            base_env: Host environment that stdio servers' env overlays are
                merged on top of. Defaults to a snapshot of os.environ.
        """
        self._session_factory: SessionFactory = session_factory or MCPBackendSession
        self.base_env: Dict[str, str] = dict(os.environ if base_env is None else base_env)
        self._sessions: Dict[str, BackendSession] = {}
        self._slots: Dict[str, _SlotLock] = {}
        self._tg: Optional[TaskGroup] = None

    async def __aenter__(self) -> "ConnectionRegistry":
        self._tg = create_task_group()
        await self._tg.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        logger.debug("ConnectionRegistry: shutting down all server sessions...")
        try:
            await self.disconnect_all()
        except DisconnectAllError as e:
            logger.error(f"Error during registry shutdown: {e}")
        finally:
            tg, self._tg = self._tg, None
            if tg is not None:
                await tg.__aexit__(exc_type, exc_val, exc_tb)

    def __contains__(self, server_name: str) -> bool:
        return server_name in self._sessions

    def is_connected(self, server_name: str) -> bool:
        return server_name in self._sessions

    def list_servers(self) -> List[str]:
        """
        Return the names of all connected servers, in connect order.
        """
        return list(self._sessions)

    def get(self, server_name: str) -> BackendSession:
        """
        Return the session registered under a name.

        Raises:
            NotConnectedError: If no session is registered under the name.
        """
        session = self._sessions.get(server_name)
        if session is None:
            raise NotConnectedError(server_name)
        return session

    @asynccontextmanager
    async def use(self, server_name: str) -> AsyncGenerator[BackendSession, None]:
        """
        Hold a server's session for a read operation.

        The session cannot be disconnected while it is held.

        Raises:
            NotConnectedError: If no session is registered under the name.
        """
        async with self._guard(server_name, exclusive=False):
            yield self.get(server_name)

    async def connect(
        self,
        server_name: str,
        params: Union[MCPServerSettings, Mapping[str, Any]],
    ) -> None:
        """
        Connect to a server and register its session under ``server_name``.

        Args:
            server_name: Name to register the session under.
            params: The server settings, or a plain mapping in the same shape.

        Raises:
            AlreadyConnectedError: If the name is already registered.
            MissingCommandError, MissingUrlError, InvalidUrlError,
            UnsupportedTransportError: If the parameters are invalid.
            ConnectionFailedError: If the session could not be opened. The
                registry is left unchanged.
        """
        task_group = self._task_group()

        async with self._guard(server_name, exclusive=True):
            if server_name in self._sessions:
                raise AlreadyConnectedError(server_name)

            connection_params: ConnectionParams = resolve_connection_params(
                server_name, params, self.base_env
            )
            logger.info(
                f"{server_name}: Connecting using {connection_params.transport} transport..."
            )

            session = self._session_factory(server_name, connection_params)
            try:
                await session.open(task_group)
            except Exception as e:
                logger.error(f"{server_name}: Failed to connect: {e}")
                raise ConnectionFailedError(server_name, e) from e

            self._sessions[server_name] = session
            logger.info(f"{server_name}: Up and running!")

    async def disconnect(self, server_name: str) -> None:
        """
        Close a server's session and remove it from the registry.

        The entry is removed even when closing fails.

        Raises:
            NotConnectedError: If the name is not registered.
            DisconnectFailedError: If the session failed to close cleanly.
        """
        async with self._guard(server_name, exclusive=True):
            session = self._sessions.pop(server_name, None)
            if session is None:
                raise NotConnectedError(server_name)

            logger.info(f"{server_name}: Disconnecting...")
            try:
                await session.close()
            except Exception as e:
                logger.error(f"{server_name}: Failed to disconnect cleanly: {e}")
                raise DisconnectFailedError(server_name, e) from e

            logger.info(f"{server_name}: Disconnected.")

    async def disconnect_all(self) -> None:
        """
        Disconnect every registered server.

        Every server is attempted even when some fail to close.

        Raises:
            DisconnectAllError: After all servers were attempted, if any of
                them failed to close cleanly.
        """
        logger.info("Disconnecting all server sessions...")
        failures: Dict[str, DisconnectFailedError] = {}

        for server_name in self.list_servers():
            try:
                await self.disconnect(server_name)
            except NotConnectedError:
                # Disconnected concurrently
                continue
            except DisconnectFailedError as e:
                failures[server_name] = e

        if failures:
            raise DisconnectAllError(failures)
        logger.info("All server sessions disconnected.")

    @asynccontextmanager
    async def _guard(self, server_name: str, exclusive: bool) -> AsyncGenerator[None, None]:
        slot = self._slots.get(server_name)
        if slot is None:
            slot = self._slots[server_name] = _SlotLock()
        slot.users += 1
        try:
            async with slot.writing() if exclusive else slot.reading():
                yield
        finally:
            slot.users -= 1
            # Nobody holds or waits on the slot, so a fresh one is equivalent
            if not slot.users and self._slots.get(server_name) is slot:
                del self._slots[server_name]

    def _task_group(self) -> TaskGroup:
        if self._tg is None:
            raise RuntimeError(
                "ConnectionRegistry must be used inside an async context (i.e. 'async with' or after __aenter__)."
            )
        return self._tg
