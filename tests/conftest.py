"""Shared fixtures: in-memory stand-ins for the database managers and logging cleanup."""

import logging

import pytest
from helpers import FakeArticleStorage, FakeErrorLog, FakeHistory, FakeRunManager, FakeSourceManager

from curator.config import ConfigModel, FetcherConfig


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def pipeline_config():
    return ConfigModel(fetcher=FetcherConfig(min_request_interval=0))


@pytest.fixture
def source_manager():
    return FakeSourceManager()


@pytest.fixture
def article_storage():
    return FakeArticleStorage()


@pytest.fixture
def run_manager():
    return FakeRunManager()


@pytest.fixture
def history():
    return FakeHistory()


@pytest.fixture
def error_log():
    return FakeErrorLog()
