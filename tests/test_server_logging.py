import logging
from pathlib import Path

import pytest

from vocal_bridge import server


def _file_handlers(path: Path):
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.FileHandler) and h.baseFilename == str(path)
    ]


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler) and handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_yaml_log_settings_are_applied_by_create_app(tmp_path: Path, restore_root_logger):
    log_path = tmp_path / "logs" / "bridge.log"
    config_path = tmp_path / "bridge.yaml"
    config_path.write_text(
        "data_dir: {data}\n"
        "server:\n"
        "  log_level: debug\n"
        "  log_file: {log}\n".format(data=tmp_path / "data", log=log_path),
        encoding="utf-8",
    )

    server.create_app(server.load_config(str(config_path)), acquire_lock=False)

    handlers = _file_handlers(log_path)
    assert len(handlers) == 1
    assert restore_root_logger.level == logging.DEBUG

    logging.getLogger("VocalBridge.test").warning("reached the configured file")
    handlers[0].flush()
    assert "reached the configured file" in log_path.read_text(encoding="utf-8")


def test_configure_logging_does_not_duplicate_file_handler(tmp_path: Path, restore_root_logger):
    from vocal_bridge.core.config import BridgeConfig, ServerConfig

    log_path = tmp_path / "bridge.log"
    config = BridgeConfig(data_dir=str(tmp_path), server=ServerConfig(log_file=str(log_path)))

    server.configure_logging(config)
    server.configure_logging(config)

    assert len(_file_handlers(log_path)) == 1
    assert restore_root_logger.level == logging.INFO
