"""
Test fixtures package.

Provides factory functions, fake channel implementations, and assertion helpers for testing.
"""

from .domain_fixtures import (
    backend_payload,
    completed,
    create_snapshot,
    failed,
    pending,
    running,
)
from .fake_channels import (
    FakeJobStatusRepository,
    FakePushChannel,
    FakePushHandle,
    Gate,
)
from .assertion_helpers import (
    assert_monotonic,
    statuses,
    wait_until,
)

__all__ = [
    "backend_payload",
    "completed",
    "create_snapshot",
    "failed",
    "pending",
    "running",
    "FakeJobStatusRepository",
    "FakePushChannel",
    "FakePushHandle",
    "Gate",
    "assert_monotonic",
    "statuses",
    "wait_until",
]
