"""Shared pytest fixtures for strategy and authenticator tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from phone_auth.config.logging import JSONFormatter
from tests.mocks.strategy_host import RecordingActions, VerifyRecorder

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def recording_actions() -> RecordingActions:
    """Provide a fresh outcome recorder per test."""
    return RecordingActions()


@pytest.fixture
def verify_success() -> VerifyRecorder:
    """Verification callback resolving to user ``{"id": 1}``."""
    return VerifyRecorder(user={"id": 1})


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Keep handler and level changes from init_logging local to one test."""
    root_logger = logging.getLogger()
    previous_level = root_logger.level
    yield
    root_logger.setLevel(previous_level)
    for handler in root_logger.handlers[:]:
        if isinstance(handler.formatter, JSONFormatter):
            root_logger.removeHandler(handler)
