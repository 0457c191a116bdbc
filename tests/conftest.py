"""
Shared pytest fixtures and configuration for jobdesk tests.

This module provides:
- Location-based markers (unit / api / cli)
- Quiet structured logging for the whole session
- A pinned clock and settings with access control switched off

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_something(fixed_now, open_settings):
        ...
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from jobdesk.core.logging import configure_logging
from jobdesk.core.settings import JobdeskSettings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        parts = Path(str(item.fspath)).relative_to(Path(__file__).parent).parts
        if parts[0] == "api":
            item.add_marker(pytest.mark.api)
        elif parts[0] == "cli":
            item.add_marker(pytest.mark.cli)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    """Only warnings and above, rendered as JSON on stderr."""
    configure_logging(level="WARNING", json_format=True, to_stderr=True)


# =============================================================================
# Time and settings
# =============================================================================

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def open_settings(tmp_path: Path) -> JobdeskSettings:
    """Access control off, in-memory store, data under ``tmp_path``."""
    return JobdeskSettings(
        access_control_enabled=False,
        store_backend="memory",
        data_dir=tmp_path,
    )
