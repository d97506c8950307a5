"""
Job Status Value Objects

Immutable value objects describing a job's status, logs and result summary.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class JobStatus(Enum):
    """Job status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        """Check if status is terminal (completed or failed)."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def is_active(self) -> bool:
        """Check if job is still pending or running."""
        return self in (JobStatus.PENDING, JobStatus.RUNNING)

    @property
    def rank(self) -> int:
        """Position in the pending < running < terminal ordering."""
        if self.is_terminal():
            return 2
        return 1 if self == JobStatus.RUNNING else 0


class LogLevel(Enum):
    """Severity of a job log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogSource(Enum):
    """Subsystem a job log entry originated from."""
    HARVESTER = "harvester"
    PROCESSOR = "processor"
    ORCHESTRATOR = "orchestrator"


class DeliveryChannel(Enum):
    """Channel a tracker currently trusts for updates."""
    NONE = "none"
    PUSH = "push"
    POLL = "poll"


@dataclass(frozen=True)
class JobLogEntry:
    """A single log line reported by the pipeline."""
    message: str
    level: LogLevel = LogLevel.INFO
    source: LogSource = LogSource.ORCHESTRATOR
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "level": self.level.value,
            "message": self.message,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class JobResult:
    """
    Summary of a completed job.

    Counts are never negative.
    """
    harvested_items: int = 0
    processed_items: int = 0
    dataset_rows_added: int = 0
    errors: int = 0
    warnings: int = 0

    def __post_init__(self):
        """Validate counters."""
        for name in ("harvested_items", "processed_items", "dataset_rows_added", "errors", "warnings"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for serialization."""
        return {
            "harvested_items": self.harvested_items,
            "processed_items": self.processed_items,
            "dataset_rows_added": self.dataset_rows_added,
            "errors": self.errors,
            "warnings": self.warnings,
        }
