"""
Shared pytest fixtures and configuration for the jobwatch test suite.

This module provides:
- Hypothesis configuration for property-based testing
- Fast tracking configuration for timer-driven tests
- Fake fetcher and push channel fixtures
- Callback recorders
"""

import pytest
from datetime import datetime, timezone
from typing import List

# Hypothesis configuration
from hypothesis import settings, HealthCheck, Phase

from jobwatch.config import WatchConfig
from jobwatch.domain.errors import TrackingError
from jobwatch.domain.job_status import JobStatusSnapshot

from tests.fixtures import FakeJobStatusRepository, FakePushChannel

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile("default")


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def fast_config() -> WatchConfig:
    """
    Provide a configuration with millisecond cadences.

    Push retries after 2, 4 and 8 poll ticks; tracking is abandoned
    after the fourth consecutive poll failure.
    """
    return WatchConfig(
        fallback_poll_interval=0.01,
        aggregate_poll_interval=0.01,
        aggregate_idle_interval=0.05,
        push_retry_ticks=2,
        max_push_retry_ticks=8,
        max_reconnect_attempts=3,
        max_consecutive_poll_failures=3,
        ws_heartbeat=None,
    )


# =============================================================================
# Fake Channel Fixtures
# =============================================================================

@pytest.fixture
def repository() -> FakeJobStatusRepository:
    """Provide a scripted status fetcher."""
    return FakeJobStatusRepository()


@pytest.fixture
def push_channel() -> FakePushChannel:
    """Provide a push channel whose handles are driven by the test."""
    return FakePushChannel()


# =============================================================================
# Callback Recorders
# =============================================================================

@pytest.fixture
def updates() -> List[JobStatusSnapshot]:
    """Collects snapshots passed to on_update."""
    return []


@pytest.fixture
def errors() -> List[TrackingError]:
    """Collects errors passed to on_error."""
    return []


# =============================================================================
# Time-related Fixtures
# =============================================================================

@pytest.fixture
def fixed_datetime():
    """Provide a fixed timezone-aware datetime for deterministic testing."""
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (local aiohttp test server)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path or "\\unit\\" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path or "\\integration\\" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/property/" in test_path or "\\property\\" in test_path:
            item.add_marker(pytest.mark.property)
