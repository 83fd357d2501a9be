"""
Sessions to individual MCP servers.

A session is opened once, used for listing and calling tools, and closed once.
The transport and MCP client session are async context managers that must be
entered and exited by the same task, so each session runs them inside a
long-lived lifecycle task started in the registry's task group.
"""

from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Protocol

from anyio import CancelScope, Event
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import CallToolResult, ListToolsResult

from muxhub.mcp.client_session import MuxHubClientSession
from muxhub.mcp.params import ConnectionParams, SseParams, StdioParams, StreamableHttpParams
from muxhub.utils.logging import get_logger

logger = get_logger(__name__)

ClientSessionFactory = Callable[
    [MemoryObjectReceiveStream, MemoryObjectSendStream, Optional[timedelta]],
    ClientSession,
]


class BackendSession(Protocol):
    """A live connection to one MCP server."""

    server_name: str

    async def open(self, task_group: TaskGroup) -> None:
        """Connect and initialize; raise if the server cannot be reached."""
        ...

    async def list_tools(self) -> ListToolsResult:
        ...

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        ...

    async def close(self) -> None:
        """Tear the connection down; raise if teardown failed."""
        ...


SessionFactory = Callable[[str, ConnectionParams], BackendSession]


def open_transport(params: ConnectionParams):
    """
    Return the transport context manager for the given connection parameters.

    The stdio and SSE transports yield ``(read_stream, write_stream)``; the
    streamable HTTP transport additionally yields a session id callback.
    """
    if isinstance(params, StdioParams):
        server_params = StdioServerParameters(
            command=params.command,
            args=params.args,
            env=params.env,
        )
        return stdio_client(server_params)
    elif isinstance(params, StreamableHttpParams):
        return streamablehttp_client(params.url, headers=params.headers or None)
    elif isinstance(params, SseParams):
        return sse_client(params.url, headers=params.headers or None)
    else:
        raise ValueError(f"Unsupported connection parameters: {type(params).__name__}")


class MCPBackendSession:
    """
    Session to an MCP server over any of the supported transports.

    Includes:
    - The lifecycle task holding the transport and ClientSession open
    - Events signalling readiness, shutdown requests and task completion
    """

    def __init__(
        self,
        server_name: str,
        params: ConnectionParams,
        client_session_factory: ClientSessionFactory = MuxHubClientSession,
    ):
        self.server_name = server_name
        self.params = params
        self._client_session_factory = client_session_factory
        self._session: Optional[ClientSession] = None
        self._started = False

        self._initialized_event = Event()
        self._shutdown_event = Event()
        self._finished_event = Event()
        self._cancel_scope = CancelScope()

        self._open_error: Optional[Exception] = None
        self._close_error: Optional[Exception] = None

    @property
    def is_open(self) -> bool:
        return self._session is not None

    async def open(self, task_group: TaskGroup) -> None:
        """
        Start the lifecycle task and wait until the session is initialized.

        Raises:
            RuntimeError: If the session was already opened once.
            Exception: Whatever the transport or the MCP handshake raised.

        If the caller is cancelled while waiting, the lifecycle task is
        cancelled too and the server is torn down.
        """
        if self._started:
            raise RuntimeError(f"{self.server_name}: Session was already opened.")
        self._started = True

        task_group.start_soon(self._lifecycle_task)
        try:
            await self._initialized_event.wait()
        except BaseException:
            # The caller gave up; the lifecycle task must not outlive it
            self._shutdown_event.set()
            self._cancel_scope.cancel()
            raise

        if self._open_error is not None:
            raise self._open_error

    async def list_tools(self) -> ListToolsResult:
        return await self._require_session().list_tools()

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        return await self._require_session().call_tool(name=name, arguments=arguments)

    async def close(self) -> None:
        """
        Request shutdown and wait for the lifecycle task to exit.

        Raises:
            Exception: The error the transport failed with, if it failed after
                the session was initialized or while tearing down.
        """
        if not self._started:
            return

        self._shutdown_event.set()
        await self._finished_event.wait()

        if self._close_error is not None:
            raise self._close_error

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError(f"{self.server_name}: Session is closed.")
        return self._session

    def _create_session(
        self,
        read_stream: MemoryObjectReceiveStream,
        write_stream: MemoryObjectSendStream,
    ) -> ClientSession:
        read_timeout = (
            timedelta(seconds=self.params.read_timeout_seconds)
            if self.params.read_timeout_seconds
            else None
        )

        session = self._client_session_factory(read_stream, write_stream, read_timeout)

        if hasattr(session, "server_name"):
            session.server_name = self.server_name

        return session

    async def _lifecycle_task(self) -> None:
        server_name = self.server_name
        with self._cancel_scope:
            try:
                async with open_transport(self.params) as streams:
                    read_stream, write_stream = streams[0], streams[1]

                    async with self._create_session(read_stream, write_stream) as session:
                        await session.initialize()
                        self._session = session
                        self._initialized_event.set()
                        logger.info(
                            f"{server_name}: Connected using {self.params.transport} transport."
                        )

                        await self._shutdown_event.wait()
                        self._session = None
            except Exception as exc:
                if self._initialized_event.is_set():
                    logger.error(f"{server_name}: Transport error in lifecycle task: {exc}")
                    self._close_error = exc
                else:
                    logger.error(f"{server_name}: Failed to initialize session: {exc}")
                    self._open_error = exc
            finally:
                self._session = None
                # Unblock open() even when the transport failed before initializing
                self._initialized_event.set()
                self._finished_event.set()
                logger.debug(f"{server_name}: Lifecycle task finished.")

        if self._cancel_scope.cancelled_caught:
            logger.info(f"{server_name}: Connection attempt abandoned.")
