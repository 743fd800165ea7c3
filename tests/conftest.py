"""Shared fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """main() configures the 'stbdiff' logger; restore it after each test."""
    logger = logging.getLogger("stbdiff")
    level = logger.level
    handlers = list(logger.handlers)
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)
