"""
Letta MCP Configuration - Configuration loading and validation.

This module provides the Config class for managing server configuration
from global (~/.letta-mcp/config.yaml), local (.letta-mcp/config.yaml) and
explicit YAML files, environment variables and command-line overrides.
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


class LettaConfig(BaseModel):
    """Connection settings for the upstream Letta server."""

    base_url: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0
    mcp_tool_list_timeout: float = 60.0


class ServerConfig(BaseModel):
    """Configuration for the MCP server itself."""

    name: str = "letta-server"
    transport: Literal["stdio", "sse", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 3001


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    file: Optional[str] = None


class PromptsConfig(BaseModel):
    enabled: bool = True


class ResourcesConfig(BaseModel):
    enabled: bool = True


class LettaMCPConfig(BaseModel):
    """Complete Letta MCP configuration schema."""

    letta: LettaConfig = Field(default_factory=LettaConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    prompts: PromptsConfig = Field(default_factory=PromptsConfig)
    resources: ResourcesConfig = Field(default_factory=ResourcesConfig)

    @property
    def api_base(self) -> str:
        """Letta REST root, ``<base_url>/v1``."""
        return f"{(self.letta.base_url or '').rstrip('/')}/v1"


class Config:
    """
    Letta MCP configuration manager.

    Handles loading, merging, and validating configuration from, in
    increasing precedence:
    - Global: ~/.letta-mcp/config.yaml
    - Local: .letta-mcp/config.yaml (nearest ancestor of the working directory)
    - An explicit file passed with ``--config``
    - Environment variables (a ``.env`` file is read first)
    - Command-line overrides

    Example:
        >>> config = Config.load(overrides={"server": {"transport": "sse"}})
        >>> config.merged.server.port
        3001
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".letta-mcp"
    LOCAL_CONFIG_DIR = Path(".letta-mcp")

    # Environment variable -> (section, key)
    ENV_VARS = {
        "LETTA_BASE_URL": ("letta", "base_url"),
        "LETTA_PASSWORD": ("letta", "password"),
        "MCP_TRANSPORT": ("server", "transport"),
        "HOST": ("server", "host"),
        "PORT": ("server", "port"),
        "LOG_LEVEL": ("logging", "level"),
        "LOG_FILE": ("logging", "file"),
    }

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
        file_config: Optional[Dict[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize Config.

        Args:
            global_config: Global configuration dictionary.
            local_config: Local (project) configuration dictionary.
            file_config: Configuration from an explicit file.
            env: Environment mapping to read variables from.
            overrides: Command-line overrides, highest precedence.
        """
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self._file_config = file_config or {}
        self._env = env if env is not None else {}
        self._overrides = overrides or {}
        self._merged: Optional[LettaMCPConfig] = None

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "Config":
        """
        Load configuration from default locations.

        Args:
            path: Optional explicit config file; it must exist.
            env: Environment to read; defaults to ``os.environ`` after loading ``.env``.
            overrides: Nested overrides, usually from CLI options.

        Returns:
            Config instance with loaded configuration.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        if path is not None and not Path(path).exists():
            raise ConfigError(f"Config file not found: {path}")

        return cls(
            global_config=cls._load_yaml(cls.GLOBAL_CONFIG_DIR / "config.yaml"),
            local_config=cls._load_yaml(cls._find_local_config()),
            file_config=cls._load_yaml(Path(path) if path is not None else None),
            env=env,
            overrides=overrides,
        )

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Failed to load config from {path}: top level must be a mapping")
        return data

    @classmethod
    def _find_local_config(cls) -> Optional[Path]:
        """Find the local config file by walking up the directory tree."""
        current = Path.cwd()
        while current != current.parent:
            config_path = current / cls.LOCAL_CONFIG_DIR / "config.yaml"
            if config_path.exists():
                return config_path
            current = current.parent
        return None

    def _env_config(self) -> Dict[str, Any]:
        """Nested config built from the environment variables that are set."""
        result: Dict[str, Any] = {}
        for var, (section, key) in self.ENV_VARS.items():
            value = self._env.get(var)
            if value:
                result.setdefault(section, {})[key] = value
        return result

    def get_merged_config(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        merged = self._global_config.copy()
        for layer in (self._local_config, self._file_config, self._env_config(), self._overrides):
            merged = self._deep_merge(merged, layer)
        return merged

    @property
    def merged(self) -> LettaMCPConfig:
        """Get the validated merged configuration."""
        if self._merged is None:
            try:
                merged = LettaMCPConfig(**self.get_merged_config())
            except ValidationError as e:
                raise ConfigError(f"Invalid configuration: {e}")

            if not merged.letta.base_url:
                raise ConfigError("Missing required environment variable: LETTA_BASE_URL")
            self._merged = merged
        return self._merged

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
