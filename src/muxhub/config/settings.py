"""
Settings models for the muxhub connection hub.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import AliasChoices, BaseModel, Field

DEFAULT_CONFIG_FILE = "muxhub.config.yaml"
DEFAULT_BLUEPRINT_API_URL = "https://muxio.vercel.app/api/blueprint-servers"
ENV_PREFIX = "MUXHUB_"


class MCPServerSettings(BaseModel):
    """
    Settings for an MCP server, as found in configuration files and blueprints.

    The record is deliberately loose: which fields are required depends on the
    transport, and that is checked when the hub connects to the server.
    """

    transport: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("transport", "type")
    )
    command: Optional[str] = None
    args: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None
    url: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    read_timeout_seconds: Optional[int] = None

    model_config = {"extra": "allow", "populate_by_name": True}


class MCPSettings(BaseModel):
    """Settings for the servers the hub connects to on startup."""

    servers: Dict[str, MCPServerSettings] = Field(default_factory=dict)
    auto_connect: bool = True


class BlueprintSettings(BaseModel):
    """Settings for loading server definitions from a remote blueprint."""

    id: Optional[str] = None
    api_url: str = DEFAULT_BLUEPRINT_API_URL
    auto_load: bool = True


class LoggingSettings(BaseModel):
    """Settings for logging configuration."""

    level: str = "info"
    file_path: Optional[str] = None


class Settings(BaseModel):
    """Root settings object for muxhub."""

    mcp: MCPSettings = Field(default_factory=MCPSettings)
    blueprint: BlueprintSettings = Field(default_factory=BlueprintSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"extra": "allow"}


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load and validate the configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.
            If None, look for 'muxhub.config.yaml' in the current directory.
        environ: Environment used for overrides. Defaults to os.environ.

    Returns:
        Settings: Validated configuration object.
    """
    if config_path is None:
        config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)

    config_data: Dict[str, Any] = {}

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    secrets_path = Path(config_path).with_suffix(".secrets.yaml")
    if secrets_path.exists():
        with open(secrets_path, "r") as f:
            secrets_data = yaml.safe_load(f) or {}

        _merge_dicts(config_data, secrets_data)

    # Blueprint-style files keep servers under a top-level "mcpServers" key
    mcp_servers = config_data.pop("mcpServers", None)
    if mcp_servers:
        config_data.setdefault("mcp", {}).setdefault("servers", {}).update(mcp_servers)

    env_config = _load_from_env(os.environ if environ is None else environ)
    if env_config:
        _merge_dicts(config_data, env_config)

    return Settings.model_validate(config_data)


def _load_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    """
    Load configuration overrides from environment variables.

    ``MUXHUB_LOGGING__LEVEL=debug`` sets ``logging.level``; the double
    underscore separates path parts so keys may contain single underscores.

    Returns:
        Dict with configuration loaded from environment variables.
    """
    config: Dict[str, Any] = {}

    _set_nested_dict(config, ["logging", "level"], environ.get("LOG_LEVEL"))
    _set_nested_dict(config, ["logging", "file_path"], environ.get("LOG_FILE"))
    _set_nested_dict(config, ["blueprint", "id"], environ.get("MCP_BLUEPRINT_ID"))

    for key, value in environ.items():
        if key.startswith(ENV_PREFIX):
            path = [part for part in key[len(ENV_PREFIX):].lower().split("__") if part]
            if path:
                _set_nested_dict(config, path, value)

    return config


def _set_nested_dict(d: Dict[str, Any], path: List[str], value: Any) -> None:
    """
    Set a value in a nested dictionary based on a path.

    Args:
        d: Dictionary to set value in.
        path: List of keys defining the path.
        value: Value to set.
    """
    if value is None:
        return

    if len(path) == 1:
        d[path[0]] = value
        return

    if not isinstance(d.get(path[0]), dict):
        d[path[0]] = {}

    _set_nested_dict(d[path[0]], path[1:], value)


def _merge_dicts(target: Dict, source: Dict) -> None:
    """
    Recursively merge source dictionary into target dictionary.
    Values in source will override values in target.
    """
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _merge_dicts(target[key], value)
        else:
            target[key] = value
