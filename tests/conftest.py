"""
Pytest Configuration for Tank Analytics Tests

IMPORTANT: The os.environ defaults must be set BEFORE any tank_analytics
import, because settings read the environment when first instantiated.
"""

import os

# Set these BEFORE any other imports
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("TENANT_OVERRIDES_FILE", None)

import pytest
import structlog

# Import all fixtures
from tests.fixtures.tank_fixtures import *  # noqa


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings from the environment around every test."""
    from tank_analytics.settings import reload_settings

    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def reset_logging():
    """Restore structlog and root logger state after logging tests."""
    import logging

    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = original_handlers
    root.setLevel(original_level)
