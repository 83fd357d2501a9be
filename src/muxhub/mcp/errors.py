"""
Error types raised by the hub's registry, catalog and router.
"""

from typing import Dict, Optional


class HubError(Exception):
    """Base class for every error raised by the hub."""


class CausedHubError(HubError):
    """
    A hub error wrapping the underlying transport or process failure.

    The cause is kept on ``.cause`` and its text is embedded in the message,
    so the original error survives even when only ``str(error)`` is shown.
    """

    def __init__(self, message: str, cause: BaseException):
        super().__init__(f"{message}: {cause}")
        self.cause = cause


class AlreadyConnectedError(HubError):
    def __init__(self, server_name: str):
        super().__init__(f"Already connected to server '{server_name}'.")
        self.server_name = server_name


class NotConnectedError(HubError):
    def __init__(self, server_name: str):
        super().__init__(f"Not connected to server '{server_name}'.")
        self.server_name = server_name


class MissingCommandError(HubError):
    def __init__(self, server_name: str):
        super().__init__(f"Stdio server '{server_name}' requires a command.")
        self.server_name = server_name


class MissingUrlError(HubError):
    def __init__(self, server_name: str):
        super().__init__(f"HTTP server '{server_name}' requires a URL.")
        self.server_name = server_name


class InvalidUrlError(CausedHubError):
    def __init__(self, server_name: str, url: str, cause: BaseException):
        super().__init__(f"Invalid URL '{url}' for server '{server_name}'", cause)
        self.server_name = server_name
        self.url = url


class UnsupportedTransportError(HubError):
    def __init__(self, server_name: str, transport: str):
        super().__init__(
            f"Unsupported transport '{transport}' for server '{server_name}'."
        )
        self.server_name = server_name
        self.transport = transport


class ConnectionFailedError(CausedHubError):
    def __init__(self, server_name: str, cause: BaseException):
        super().__init__(f"Failed to connect to server '{server_name}'", cause)
        self.server_name = server_name


class DisconnectFailedError(CausedHubError):
    def __init__(self, server_name: str, cause: BaseException):
        super().__init__(f"Failed to disconnect from server '{server_name}'", cause)
        self.server_name = server_name


class DisconnectAllError(HubError):
    """
    Raised by ``disconnect_all`` after every server was attempted.

    Attributes:
        failures: The individual close failures keyed by server name.
    """

    def __init__(self, failures: Dict[str, DisconnectFailedError]):
        details = "; ".join(str(error) for error in failures.values())
        super().__init__(
            f"Failed to disconnect {len(failures)} server(s): {details}"
        )
        self.failures = failures


class ListToolsFailedError(CausedHubError):
    def __init__(self, server_name: str, cause: BaseException):
        super().__init__(f"Failed to list tools on server '{server_name}'", cause)
        self.server_name = server_name


class InvalidPatternError(CausedHubError):
    def __init__(self, pattern: str, cause: BaseException):
        super().__init__(f"Invalid regex pattern '{pattern}'", cause)
        self.pattern = pattern


class ToolNotFoundError(HubError):
    def __init__(self, server_name: str, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found on server '{server_name}'")
        self.server_name = server_name
        self.tool_name = tool_name


class InvocationFailedError(CausedHubError):
    def __init__(self, server_name: str, tool_name: str, cause: BaseException):
        super().__init__(
            f"Failed to call tool '{tool_name}' on server '{server_name}'", cause
        )
        self.server_name = server_name
        self.tool_name = tool_name


class BlueprintError(HubError):
    """Raised when a blueprint configuration cannot be fetched or is malformed."""

    def __init__(self, message: str, blueprint_id: Optional[str] = None):
        super().__init__(message)
        self.blueprint_id = blueprint_id
