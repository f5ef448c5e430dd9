"""Configuration loading and validation."""

from letta_mcp.validation.config import Config, ConfigError, LettaMCPConfig

__all__ = ["Config", "ConfigError", "LettaMCPConfig"]
