"""
jobwatch

Live status subscription layer for long-running harvesting and
processing jobs. Reconciles a WebSocket push channel and HTTP polling
into one consistent snapshot stream per job.
"""

from .application import JobAggregator, JobTracker, JobWatchService, TrackerState
from .config import WatchConfig
from .domain.errors import (
    ErrorCategory,
    JobNotFoundError,
    MalformedMessageError,
    TrackingError,
    TransportError,
)
from .domain.job_status import JobLogEntry, JobResult, JobStatus, JobStatusSnapshot

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "JobAggregator",
    "JobLogEntry",
    "JobNotFoundError",
    "JobResult",
    "JobStatus",
    "JobStatusSnapshot",
    "JobTracker",
    "JobWatchService",
    "MalformedMessageError",
    "TrackerState",
    "TrackingError",
    "TransportError",
    "WatchConfig",
]
