"""
Shared pytest fixtures and configuration for syncspawn tests.

This module provides:
- Settings/logging reset fixtures for test isolation
- Fast engine settings (short poll interval)
- A fake clock for driving the supervisor without sleeping
- Helpers for running small Python programs as children

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.
"""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Ensure syncspawn package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from syncspawn.core.settings import SpawnSettings, reset_settings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_and_logging() -> Generator[None, None, None]:
    """Drop cached settings and structlog configuration around every test."""
    reset_settings()
    structlog.reset_defaults()
    yield
    reset_settings()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def fast_settings() -> SpawnSettings:
    """Settings with a 50ms poll interval so timeout tests stay quick."""
    return SpawnSettings(poll_interval_ms=50, _env_file=None)


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Real-process helpers
# =============================================================================


@pytest.fixture
def python() -> str:
    """Path of the running interpreter, used as a portable child program."""
    return sys.executable
