"""
Shared pytest fixtures and configuration for cadence tests.

This module provides:
- Auto-marking of tests by location (unit / integration)
- Settings cache isolation between tests
- A ManualClock fixture for deterministic rate-limiter tests
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure cadence package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cadence.core.clock import ManualClock
from cadence.core.settings import reset_settings


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_settings_fixture() -> Generator[None, None, None]:
    """Drop cached settings before and after each test so env overrides apply."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def manual_clock() -> ManualClock:
    """A clock that only moves when the test advances it."""
    return ManualClock(value=100.0)
