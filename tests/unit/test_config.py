"""
Unit tests for server configuration.
"""

import pytest

from userserver.config import ServerConfig
from userserver.__main__ import load_config


ENV_VARS = [
    "DATABASE_URL",
    "HTTP_HOST",
    "HTTP_PORT",
    "HTTP_WORKERS",
    "HTTP_TIMEOUT",
    "HTTP_BUFFER_SIZE",
    "HTTP_MAX_REQUEST_SIZE",
    "HTTP_LOG_LEVEL",
    "DB_POOL_SIZE",
    "DB_MAX_OVERFLOW",
    "DB_POOL_TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig defaults and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.workers == 0
        assert config.timeout is None
        assert config.buffer_size == 1024
        assert config.database_url is None

    def test_valid_config(self):
        ServerConfig(database_url="sqlite:///users.db").validate()

    def test_missing_database_url(self):
        with pytest.raises(ValueError, match="DATABASE_URL"):
            ServerConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"buffer_size": 10},
        {"buffer_size": 4096, "max_request_size": 1024},
        {"workers": -2},
        {"pool_size": 0},
        {"timeout": 0},
    ])
    def test_invalid_values(self, overrides):
        config = ServerConfig(database_url="sqlite:///users.db", **overrides)
        with pytest.raises(ValueError):
            config.validate()

    def test_port_zero_allowed(self):
        """Port 0 asks the OS for a free port."""
        ServerConfig(database_url="sqlite:///users.db", port=0).validate()


class TestFromEnv:
    """Tests for environment loading."""

    def test_from_env_defaults(self, clean_env):
        config = ServerConfig.from_env()

        assert config.port == 3000
        assert config.database_url is None
        assert config.timeout is None

    def test_from_env_reads_variables(self, clean_env):
        clean_env.setenv("DATABASE_URL", "postgresql://app:pw@db:5432/users")
        clean_env.setenv("HTTP_PORT", "4000")
        clean_env.setenv("HTTP_WORKERS", "8")
        clean_env.setenv("HTTP_TIMEOUT", "2.5")
        clean_env.setenv("DB_POOL_SIZE", "10")

        config = ServerConfig.from_env()

        assert config.database_url == "postgresql://app:pw@db:5432/users"
        assert config.port == 4000
        assert config.workers == 8
        assert config.timeout == 2.5
        assert config.pool_size == 10


class TestCommandLine:
    """Tests for CLI overrides on top of the environment."""

    def test_flags_override_env(self, clean_env):
        clean_env.setenv("DATABASE_URL", "sqlite:///from-env.db")
        clean_env.setenv("HTTP_PORT", "4000")

        config = load_config(["--port", "5000", "--workers", "2", "-l", "DEBUG"])

        assert config.port == 5000
        assert config.workers == 2
        assert config.log_level == "DEBUG"
        assert config.database_url == "sqlite:///from-env.db"

    def test_unset_flags_keep_env(self, clean_env):
        clean_env.setenv("HTTP_HOST", "127.0.0.1")

        config = load_config(["--database-url", "sqlite:///cli.db"])

        assert config.host == "127.0.0.1"
        assert config.database_url == "sqlite:///cli.db"

    def test_missing_database_url_exits(self, clean_env, capsys):
        from userserver.__main__ import main

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "Error: DATABASE_URL" in capsys.readouterr().err
