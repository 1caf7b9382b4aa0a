"""Tests for vocal_bridge.platform — data directory resolution."""

import os
from pathlib import Path
from unittest.mock import patch

from vocal_bridge.platform import get_data_dir, get_platform_info, is_running_in_docker


class TestDockerDetection:
    def test_docker_env_var(self):
        with patch.dict(os.environ, {"VOCAL_BRIDGE_DOCKER": "1"}):
            assert is_running_in_docker() is True

    def test_runs_without_marker(self):
        with patch.dict(os.environ, {}, clear=True):
            assert isinstance(is_running_in_docker(), bool)


class TestDataDir:
    def test_env_override(self):
        with patch.dict(os.environ, {"VOCAL_BRIDGE_DATA_DIR": "/custom/data"}):
            assert get_data_dir() == Path("/custom/data")

    def test_env_override_wins_in_docker(self):
        with patch.dict(os.environ, {"VOCAL_BRIDGE_DATA_DIR": "/custom/data"}), patch(
            "vocal_bridge.platform.is_running_in_docker", return_value=True
        ):
            assert get_data_dir() == Path("/custom/data")

    def test_docker_default(self, monkeypatch):
        monkeypatch.delenv("VOCAL_BRIDGE_DATA_DIR", raising=False)
        with patch("vocal_bridge.platform.is_running_in_docker", return_value=True):
            assert get_data_dir() == Path("/data")

    def test_default_comes_from_platformdirs(self, monkeypatch, tmp_path):
        monkeypatch.delenv("VOCAL_BRIDGE_DATA_DIR", raising=False)
        with patch("vocal_bridge.platform.is_running_in_docker", return_value=False), patch(
            "vocal_bridge.platform.platformdirs.user_data_dir", return_value=str(tmp_path / "vb")
        ) as user_data_dir:
            result = get_data_dir()

        user_data_dir.assert_called_once_with("vocal-bridge", "VocalBridge")
        assert result == tmp_path / "vb"

    def test_default_is_named_for_the_app(self, monkeypatch):
        monkeypatch.delenv("VOCAL_BRIDGE_DATA_DIR", raising=False)
        with patch("vocal_bridge.platform.is_running_in_docker", return_value=False):
            result = get_data_dir()
        assert isinstance(result, Path)
        assert "vocal-bridge" in str(result).lower()


def test_platform_info_reports_data_dir():
    with patch.dict(os.environ, {"VOCAL_BRIDGE_DATA_DIR": "/custom/data"}):
        info = get_platform_info()
    assert info["data_dir"] == str(Path("/custom/data"))
    assert {"os", "python", "is_docker"} <= set(info)
