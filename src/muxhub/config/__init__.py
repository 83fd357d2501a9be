"""
Configuration management for muxhub.
"""

from .settings import (
    Settings,
    MCPSettings,
    MCPServerSettings,
    BlueprintSettings,
    LoggingSettings,
    load_config,
)

__all__ = [
    "Settings",
    "MCPSettings",
    "MCPServerSettings",
    "BlueprintSettings",
    "LoggingSettings",
    "load_config",
]
