"""Root pytest configuration for all tests."""

from __future__ import annotations

import logging

import pytest

from gdlsp_proxy.logging import logger as package_logger

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Restore the package logger after tests that start a LogContext."""
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
    package_logger.setLevel(level)


@pytest.fixture
def caplog_debug(caplog):
    """caplog capturing DEBUG and above from the package logger."""
    caplog.set_level(logging.DEBUG, logger="gdlsp_proxy")
    return caplog
