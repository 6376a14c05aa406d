"""Shared fixtures."""

import logging

import pytest

from auto_updatable import logging_config


@pytest.fixture(autouse=True)
def reset_logging():
    """Let caplog see auto_updatable records regardless of earlier setup_logging calls."""
    logger = logging.getLogger(logging_config.LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    yield
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def make_package(tmp_path):
    """Create a package directory with the given build.sh content."""
    def _make(name: str, content: str):
        directory = tmp_path / name
        directory.mkdir()
        (directory / "build.sh").write_text(content, encoding="utf-8")
        return directory
    return _make
