"""
Application Layer

Tracking use cases built on the domain model: the poll loop, the
single-job tracker, the multi-job aggregator and the watch service.
"""

from .arbitration import ChannelRace
from .event_publisher import EventPublisher
from .job_aggregator import JobAggregator
from .job_tracker import JobTracker, TrackerState
from .poll_loop import PollLoop
from .watch_service import JobWatchService

__all__ = [
    "ChannelRace",
    "EventPublisher",
    "JobAggregator",
    "JobTracker",
    "JobWatchService",
    "PollLoop",
    "TrackerState",
]
