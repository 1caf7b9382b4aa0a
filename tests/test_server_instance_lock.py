import types
from pathlib import Path
from unittest.mock import MagicMock, patch

import portalocker
import pytest

from vocal_bridge import server


@pytest.fixture(autouse=True)
def _reset_server_lock_state():
    server._SERVER_INSTANCE_LOCK_HANDLE = None
    server._SERVER_INSTANCE_LOCK_PATH = None
    yield
    server._SERVER_INSTANCE_LOCK_HANDLE = None
    server._SERVER_INSTANCE_LOCK_PATH = None


def _config_with_data_dir(path: Path):
    return types.SimpleNamespace(data_dir=str(path))


def test_acquire_server_instance_lock_success(tmp_path: Path):
    config = _config_with_data_dir(tmp_path)
    lock_handle = MagicMock()

    with patch("vocal_bridge.server.portalocker.Lock", return_value=lock_handle) as lock_ctor:
        server._acquire_server_instance_lock(config)

    expected_path = tmp_path / ".vocal_bridge_server.instance.lock"
    lock_ctor.assert_called_once()
    assert lock_ctor.call_args.args[0] == str(expected_path)
    lock_handle.acquire.assert_called_once()
    assert server._SERVER_INSTANCE_LOCK_HANDLE is lock_handle
    assert server._SERVER_INSTANCE_LOCK_PATH == expected_path


def test_acquire_server_instance_lock_raises_on_contention(tmp_path: Path):
    config = _config_with_data_dir(tmp_path)
    lock_handle = MagicMock()
    lock_handle.acquire.side_effect = portalocker.exceptions.LockException("locked")

    with patch("vocal_bridge.server.portalocker.Lock", return_value=lock_handle):
        with pytest.raises(RuntimeError, match="already held"):
            server._acquire_server_instance_lock(config)

    assert server._SERVER_INSTANCE_LOCK_HANDLE is None
    assert server._SERVER_INSTANCE_LOCK_PATH is None


def test_release_server_instance_lock_is_idempotent():
    lock_handle = MagicMock()
    server._SERVER_INSTANCE_LOCK_HANDLE = lock_handle
    server._SERVER_INSTANCE_LOCK_PATH = Path("dummy.lock")

    server._release_server_instance_lock()
    server._release_server_instance_lock()

    lock_handle.release.assert_called_once()
    assert server._SERVER_INSTANCE_LOCK_HANDLE is None
    assert server._SERVER_INSTANCE_LOCK_PATH is None


def test_release_failure_is_logged_not_raised(caplog):
    lock_handle = MagicMock()
    lock_handle.release.side_effect = OSError("already unlocked")
    server._SERVER_INSTANCE_LOCK_HANDLE = lock_handle
    server._SERVER_INSTANCE_LOCK_PATH = Path("dummy.lock")

    with caplog.at_level("WARNING"):
        server._release_server_instance_lock()

    assert "already unlocked" in caplog.text
    assert server._SERVER_INSTANCE_LOCK_HANDLE is None


def test_second_app_on_same_data_dir_fails_to_start(tmp_path: Path):
    from fastapi.testclient import TestClient

    from vocal_bridge.core.config import BridgeConfig

    config = BridgeConfig(data_dir=str(tmp_path))
    lock_handle = MagicMock()
    lock_handle.acquire.side_effect = portalocker.exceptions.LockException("locked")

    with patch("vocal_bridge.server.portalocker.Lock", return_value=lock_handle):
        with pytest.raises(RuntimeError, match="already held"):
            with TestClient(server.create_app(config)):
                pass
