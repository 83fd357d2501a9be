"""
Client session used by the hub for its connections to MCP servers.

This extends the base MCP client session with per-server request logging.
"""

from typing import Optional

from mcp import ClientSession

from muxhub.utils.logging import get_logger

logger = get_logger(__name__)


class MuxHubClientSession(ClientSession):
    """
    Client session for hub connections to MCP servers.

    Requests, notifications and failures are logged under the name of the
    server the session belongs to.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.server_name: Optional[str] = None

    @property
    def _log_prefix(self) -> str:
        return self.server_name or "unnamed server"

    async def send_request(self, request, result_type, *args, **kwargs):
        logger.debug(f"{self._log_prefix}: send_request: request=", data=request.model_dump())
        try:
            result = await super().send_request(request, result_type, *args, **kwargs)
            logger.debug(f"{self._log_prefix}: send_request: response=", data=result.model_dump())
            return result
        except Exception as e:
            logger.error(f"{self._log_prefix}: send_request failed: {e}")
            raise

    async def send_notification(self, notification, *args, **kwargs):
        logger.debug(f"{self._log_prefix}: send_notification:", data=notification.model_dump())
        try:
            return await super().send_notification(notification, *args, **kwargs)
        except Exception as e:
            logger.error(f"{self._log_prefix}: send_notification failed: {e}")
            raise

    async def _received_notification(self, notification) -> None:
        logger.info(
            f"{self._log_prefix}: received notification=",
            data=notification.model_dump(),
        )
        return await super()._received_notification(notification)
