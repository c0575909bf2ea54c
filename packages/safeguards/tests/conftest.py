"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock

import pytest
import structlog

from safeguards.config.settings import get_settings


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Create a fake clock starting at a fixed epoch time."""
    return FakeClock()


@pytest.fixture(autouse=True)
def fresh_settings():
    """Make every test read settings from the current environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def reset_structlog():
    """Restore structlog defaults after a test reconfigures it."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def succeeding_operation():
    """Async operation that returns a value."""
    return AsyncMock(return_value="ok")


@pytest.fixture
def failing_operation():
    """Async operation that always raises."""
    return AsyncMock(side_effect=RuntimeError("upstream down"))
