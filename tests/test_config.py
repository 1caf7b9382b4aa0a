"""Tests for vocal_bridge.core.config — Configuration management."""

import os

import pytest

from vocal_bridge.core.config import (
    BridgeConfig,
    PlatformConfig,
    ServerConfig,
    SessionConfig,
    WorkspaceConfig,
)

_ENV_KEYS = [
    "PORT",
    "DB_PATH",
    "WORKSPACE_DIR",
    "VOCAL_BRIDGE_DATA_DIR",
    "VOCAL_BRIDGE_PORT",
    "VOCAL_BRIDGE_DB_PATH",
    "VOCAL_BRIDGE_WORKSPACE_DIR",
    "VOCAL_BRIDGE_SESSION_TTL_SECONDS",
    "VOCAL_BRIDGE_MAX_SESSIONS",
    "VOCAL_BRIDGE_TOOL_RESPONSE_MAX_CHARS",
    "VOCAL_BRIDGE_CORS_ORIGINS",
    "VOCAL_BRIDGE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_sub_config_defaults(self):
        assert ServerConfig().port == 8080
        assert ServerConfig().cors_origins == ["*"]
        assert SessionConfig().idle_ttl_seconds == 3600.0
        assert SessionConfig().max_sessions == 1000
        assert WorkspaceConfig().max_read_bytes == 5 * 1024 * 1024
        assert PlatformConfig().github_api_url == "https://api.github.com"

    def test_paths_follow_data_dir(self, tmp_path):
        config = BridgeConfig(data_dir=str(tmp_path))
        assert config.store.db_path == os.path.join(str(tmp_path), "memory.db")
        assert config.workspace.root == os.path.join(str(tmp_path), "workspace")
        assert config.tool_response_max_chars is None

    def test_ensure_directories(self, tmp_path):
        config = BridgeConfig(data_dir=str(tmp_path / "data"))
        config.ensure_directories()
        assert (tmp_path / "data").is_dir()
        assert (tmp_path / "data" / "workspace").is_dir()


class TestFromEnv:
    def test_hosting_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("DB_PATH", str(tmp_path / "db" / "graph.db"))
        monkeypatch.setenv("WORKSPACE_DIR", str(tmp_path / "ws"))

        config = BridgeConfig.from_env()
        assert config.server.port == 9090
        assert config.store.db_path == str(tmp_path / "db" / "graph.db")
        assert config.workspace.root == str(tmp_path / "ws")

    def test_prefixed_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VOCAL_BRIDGE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("VOCAL_BRIDGE_SESSION_TTL_SECONDS", "120")
        monkeypatch.setenv("VOCAL_BRIDGE_MAX_SESSIONS", "5")
        monkeypatch.setenv("VOCAL_BRIDGE_TOOL_RESPONSE_MAX_CHARS", "4000")
        monkeypatch.setenv("VOCAL_BRIDGE_CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("VOCAL_BRIDGE_LOG_LEVEL", "debug")

        config = BridgeConfig.from_env()
        assert config.data_dir == str(tmp_path)
        assert config.store.db_path == os.path.join(str(tmp_path), "memory.db")
        assert config.sessions.idle_ttl_seconds == 120.0
        assert config.sessions.max_sessions == 5
        assert config.tool_response_max_chars == 4000
        assert config.server.cors_origins == ["https://a.example", "https://b.example"]
        assert config.server.log_level == "DEBUG"

    def test_invalid_numbers_are_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("PORT", "eighty")
        monkeypatch.setenv("VOCAL_BRIDGE_MAX_SESSIONS", "-3")

        with caplog.at_level("WARNING"):
            config = BridgeConfig.from_env()
        assert config.server.port == 8080
        assert config.sessions.max_sessions == 1000
        assert "PORT" in caplog.text


class TestFromYaml:
    def test_loads_nested_sections(self, tmp_path):
        path = tmp_path / "bridge.yaml"
        path.write_text(
            "data_dir: {data}\n"
            "tool_response_max_chars: 2000\n"
            "server:\n"
            "  port: 7000\n"
            "sessions:\n"
            "  idle_ttl_seconds: 30\n".format(data=tmp_path / "d"),
            encoding="utf-8",
        )
        config = BridgeConfig.from_yaml(str(path))
        assert config.server.port == 7000
        assert config.sessions.idle_ttl_seconds == 30
        assert config.tool_response_max_chars == 2000
        assert config.store.db_path.endswith("memory.db")

    def test_missing_file_falls_back_to_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PORT", "9191")
        config = BridgeConfig.from_yaml(str(tmp_path / "missing.yaml"))
        assert config.server.port == 9191
