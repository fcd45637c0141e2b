"""
Shared pytest fixtures and configuration for waitspine tests.

This module provides:
- Settings cache isolation (environment overrides never leak between tests)
- Auto-marking of tests by location
- Small predicate helpers used across the execution tests
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure waitspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from waitspine.core.settings import reset_settings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_fixture() -> Generator[None, None, None]:
    """Re-read WAITSPINE_* settings for every test."""
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# Predicate Fixtures
# =============================================================================


class Counter:
    """Predicate that becomes truthy after ``succeed_at`` calls."""

    def __init__(self, succeed_at: int | None = None, value=True):
        self.calls = 0
        self.succeed_at = succeed_at
        self.value = value

    def __call__(self, *args):
        self.calls += 1
        if self.succeed_at is not None and self.calls >= self.succeed_at:
            return self.value
        return False


@pytest.fixture
def counter() -> type[Counter]:
    """Factory for counting predicates: ``counter(succeed_at=3)``."""
    return Counter
