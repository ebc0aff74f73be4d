"""Shared test fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_denv_logger():
    """Undo the CLI logging setup so records reach caplog again."""
    yield
    logger = logging.getLogger("denv")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
