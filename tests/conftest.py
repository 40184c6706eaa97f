"""
Pytest configuration for Cache Control Worker tests.
"""

from unittest.mock import MagicMock

import pytest
import structlog

from cache_control_worker.config import Settings
from cache_control_worker.services import ObjectStore


@pytest.fixture(autouse=True)
def reset_structlog():
    """Keep structlog configuration from leaking between tests."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        topic="bucket-events",
        cache_control="no-cache",
        gcp_project_id="test-project",
        shutdown_timeout=1.0,
    )


@pytest.fixture
def store() -> MagicMock:
    return MagicMock(spec=ObjectStore)
