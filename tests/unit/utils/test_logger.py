"""
Logging Setup Unit Tests
"""

import logging

import pytest

from visionflow.utils import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_stdout_only(restore_root_logger):
    assert setup_logging(level=logging.DEBUG, log_to_file=False) is None
    assert logging.getLogger().level == logging.DEBUG


def test_daily_log_file(tmp_path, restore_root_logger):
    log_path = setup_logging(log_dir=tmp_path / "logs")

    logging.getLogger("visionflow.test").info("flow loaded")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path.parent == tmp_path / "logs"
    assert log_path.name.startswith("visionflow_")
    assert "flow loaded" in log_path.read_text(encoding='utf-8')
