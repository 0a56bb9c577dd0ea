from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

import pytest

from cliptriage.log_setup import LOG_FILE_NAME, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_adds_rotating_file(tmp_path: Path, restore_root_logger) -> None:
    log_path = configure_logging("debug", tmp_path / "logs")

    assert log_path == tmp_path / "logs" / LOG_FILE_NAME
    assert restore_root_logger.level == logging.DEBUG
    kinds = {type(handler) for handler in restore_root_logger.handlers}
    assert logging.handlers.RotatingFileHandler in kinds

    logging.getLogger("cliptriage.test").info("hello")
    for handler in restore_root_logger.handlers:
        handler.flush()
    assert "cliptriage.test - INFO - hello" in log_path.read_text(encoding="utf-8")


def test_configure_logging_console_only(restore_root_logger) -> None:
    assert configure_logging(logging.WARNING) is None
    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.level == logging.WARNING
