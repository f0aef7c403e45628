"""Tests for logging setup."""

import logging
import logging.handlers

import pytest
from rich.logging import RichHandler

from curator.logging_config import setup_logging


@pytest.mark.usefixtures("restore_root_logger")
def test_console_and_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "curator.log"
    setup_logging("debug", str(log_file))

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in root.handlers)
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)

    logging.getLogger("curator.test").info("harbour feed parsed")
    for handler in root.handlers:
        handler.flush()
    assert "harbour feed parsed" in log_file.read_text()


@pytest.mark.usefixtures("restore_root_logger")
def test_noisy_libraries_are_quieted():
    setup_logging("DEBUG")

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("trafilatura").level == logging.WARNING


@pytest.mark.usefixtures("restore_root_logger")
def test_unknown_level_falls_back_to_info():
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO
