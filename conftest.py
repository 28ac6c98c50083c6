"""Root conftest.py for tabsync tests.

This file MUST be at the repository root for fixtures to be discovered
when running tests from any subdirectory.

Provides shared fixtures used across all test modules:
- tabsync/tests
- tabsync_protocols/tests
- tabsync_shared/tests
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (may use mocks)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests wiring several components"
    )
    config.addinivalue_line(
        "markers", "slow: Slow-running tests"
    )


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Components bind context onto injected loggers, so bind() returns the
    same mock and every call can be asserted on one object.
    """
    logger = MagicMock()
    logger.info = MagicMock()
    logger.debug = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    logger.bind = MagicMock(return_value=logger)
    return logger


@pytest.fixture(autouse=True)
def reset_globals():
    """Isolate tests from the session-wide bus and settings singletons."""
    from tabsync.ipc.bus import reset_bus
    from tabsync_protocols.config import reset_settings

    reset_bus()
    reset_settings()
    yield
    reset_bus()
    reset_settings()
