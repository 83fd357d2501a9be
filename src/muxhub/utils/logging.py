"""
Logging utilities for muxhub.

Everything is written to stderr: when the hub serves MCP over stdio, stdout
carries the protocol stream.
"""

import logging
from typing import TYPE_CHECKING, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from muxhub.config.settings import LoggingSettings


_loggers: Dict[str, logging.Logger] = {}
_console = Console(stderr=True)
_log_level = logging.INFO
_log_handlers = [RichHandler(console=_console, rich_tracebacks=True)]


def configure_logging(level: int = logging.INFO, add_file_handler: Optional[str] = None) -> None:
    """
    Configure the logging system.

    Args:
        level: Logging level.
        add_file_handler: If provided, also log to this file.
    """
    global _log_level, _log_handlers

    _log_level = level
    _log_handlers = [RichHandler(console=_console, rich_tracebacks=True)]

    if add_file_handler:
        file_handler = logging.FileHandler(add_file_handler)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))
        _log_handlers.append(file_handler)

    # Update existing loggers
    for logger in _loggers.values():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        for handler in _log_handlers:
            logger.addHandler(handler)

        logger.setLevel(_log_level)


def configure_logging_from_settings(settings: "LoggingSettings") -> None:
    """
    Configure logging from the ``logging`` section of the settings.

    Raises:
        ValueError: If the configured level is not a known logging level.
    """
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.level}")

    configure_logging(level=level, add_file_handler=settings.file_path)


class PatchedLogger(logging.Logger):
    """
    A logger that supports the 'data' keyword for structured context.
    """

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False,
             stacklevel=1, data=None):
        if data is not None:
            msg = f"{msg} {data}"

        super()._log(level, msg, args, exc_info, extra, stack_info, stacklevel)


logging.setLoggerClass(PatchedLogger)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance.
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(_log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    for handler in _log_handlers:
        logger.addHandler(handler)

    _loggers[name] = logger
    return logger
