"""Shared pytest fixtures."""

from __future__ import annotations

import logging

import pytest

from pagecomposer.logging import LOGGER_NAME


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """CLI tests configure the package logger; undo it so caplog keeps working."""

    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
