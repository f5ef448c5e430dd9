"""Tests for configuration management."""

import tempfile
from pathlib import Path

import pytest

from letta_mcp.validation.config import Config, ConfigError, LettaMCPConfig


class TestConfig:
    """Tests for Config class."""

    @pytest.fixture
    def temp_config_dir(self):
        """Create a temporary config directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_deep_merge(self):
        """Test deep merging of dictionaries."""
        config = Config()

        base = {
            "a": 1,
            "b": {"c": 2, "d": 3},
            "e": [1, 2, 3],
        }

        override = {
            "b": {"c": 10, "f": 5},
            "g": "new",
        }

        result = config._deep_merge(base, override)

        assert result["a"] == 1
        assert result["b"]["c"] == 10
        assert result["b"]["d"] == 3
        assert result["b"]["f"] == 5
        assert result["e"] == [1, 2, 3]
        assert result["g"] == "new"

    def test_get_merged_config(self):
        """Test layer precedence: local over global."""
        config = Config(
            global_config={"letta": {"base_url": "http://global:8283", "timeout": 10}},
            local_config={"letta": {"base_url": "http://local:8283"}},
        )
        merged = config.get_merged_config()

        assert merged["letta"]["base_url"] == "http://local:8283"
        assert merged["letta"]["timeout"] == 10

    def test_env_overrides_files(self):
        """Test environment variables override YAML layers."""
        config = Config(
            file_config={"letta": {"base_url": "http://file:8283"}, "server": {"port": 9000}},
            env={"LETTA_BASE_URL": "http://env:8283", "PORT": "4000", "MCP_TRANSPORT": "http"},
        )
        merged = config.merged

        assert merged.letta.base_url == "http://env:8283"
        assert merged.server.port == 4000
        assert merged.server.transport == "http"

    def test_overrides_win(self):
        """Test command-line overrides have the highest precedence."""
        config = Config(
            env={"LETTA_BASE_URL": "http://env:8283", "MCP_TRANSPORT": "sse"},
            overrides={"server": {"transport": "stdio"}},
        )

        assert config.merged.server.transport == "stdio"

    def test_empty_env_values_are_ignored(self):
        """Test unset-looking environment values do not clobber file values."""
        config = Config(
            file_config={"letta": {"base_url": "http://file:8283"}},
            env={"LETTA_BASE_URL": ""},
        )

        assert config.merged.letta.base_url == "http://file:8283"

    def test_missing_base_url(self):
        """Test a missing Letta URL is a configuration error."""
        config = Config(env={})

        with pytest.raises(ConfigError, match="LETTA_BASE_URL"):
            config.merged

    def test_invalid_transport(self):
        """Test validation errors surface as ConfigError."""
        config = Config(env={"LETTA_BASE_URL": "http://x", "MCP_TRANSPORT": "carrier-pigeon"})

        with pytest.raises(ConfigError, match="Invalid configuration"):
            config.merged

    def test_api_base(self):
        """Test the REST root gets a single /v1 suffix."""
        config = LettaMCPConfig(letta={"base_url": "http://letta:8283/"})

        assert config.api_base == "http://letta:8283/v1"

    def test_defaults(self):
        """Test default settings."""
        config = Config(env={"LETTA_BASE_URL": "http://x"}).merged

        assert config.server.name == "letta-server"
        assert config.server.transport == "stdio"
        assert config.server.port == 3001
        assert config.letta.mcp_tool_list_timeout == 60.0
        assert config.prompts.enabled is True
        assert config.resources.enabled is True

    def test_load_yaml(self, temp_config_dir):
        """Test loading YAML configuration."""
        config_file = temp_config_dir / "config.yaml"
        config_file.write_text(
            """
letta:
  base_url: http://yaml:8283
  password: secret
server:
  transport: sse
  port: 8080
"""
        )

        data = Config._load_yaml(config_file)

        assert data["letta"]["password"] == "secret"
        assert data["server"]["port"] == 8080

    def test_load_yaml_nonexistent(self, temp_config_dir):
        """Test loading non-existent YAML file."""
        data = Config._load_yaml(temp_config_dir / "nonexistent.yaml")
        assert data == {}

    def test_load_yaml_not_a_mapping(self, temp_config_dir):
        """Test a YAML list at the top level is rejected."""
        config_file = temp_config_dir / "config.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            Config._load_yaml(config_file)

    def test_load_explicit_file(self, temp_config_dir, monkeypatch):
        """Test Config.load reads an explicit file below the environment."""
        monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", temp_config_dir / "global")
        monkeypatch.chdir(temp_config_dir)
        config_file = temp_config_dir / "letta.yaml"
        config_file.write_text("letta:\n  base_url: http://yaml:8283\nserver:\n  port: 8080\n")

        config = Config.load(config_file, env={"PORT": "9090"})

        assert config.merged.letta.base_url == "http://yaml:8283"
        assert config.merged.server.port == 9090

    def test_load_missing_explicit_file(self, temp_config_dir):
        """Test an explicit path that does not exist is an error."""
        with pytest.raises(ConfigError, match="not found"):
            Config.load(temp_config_dir / "missing.yaml", env={})
