"""
Watch Application Service

Caller-facing entry point: watch one job or a set of jobs and get back
a function that stops watching.
"""

import logging
from typing import Callable, Iterable, Optional, Set

import aiohttp

from jobwatch.config.settings import WatchConfig
from jobwatch.domain.events import DomainEvent
from jobwatch.domain.job_status import JobStatusRepository, PushChannel
from jobwatch.infrastructure.event_handlers import LoggingEventHandler
from jobwatch.infrastructure.http_status_repository import HttpJobStatusRepository
from jobwatch.infrastructure.websocket_channel import WebSocketPushChannel

from .event_publisher import EventPublisher
from .job_aggregator import JobAggregator, TableCallback
from .job_tracker import ErrorCallback, JobTracker, UpdateCallback

logger = logging.getLogger(__name__)


class JobWatchService:
    """
    Application service wiring fetcher, push channel, trackers and aggregators.

    Owns the aiohttp session unless one is passed in. All methods must be
    called from the event loop the service is used on.
    """

    def __init__(
        self,
        config: Optional[WatchConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        repository: Optional[JobStatusRepository] = None,
        push_channel: Optional[PushChannel] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Settings, read from the environment when omitted
            session: Shared aiohttp session; created lazily when omitted
            repository: Status fetcher override
            push_channel: Push channel override
            publisher: Event publisher; a logging handler is attached when omitted
        """
        self.config = config or WatchConfig.from_env()
        self._session = session
        self._owns_session = session is None
        self._repository = repository
        self._push_channel = push_channel

        if publisher is None:
            publisher = EventPublisher()
            handler = LoggingEventHandler(logging.getLogger("jobwatch.events"))
            publisher.subscribe(DomainEvent, handler.handle)
        self.publisher = publisher

        self._trackers: Set[JobTracker] = set()
        self._aggregators: Set[JobAggregator] = set()

    async def __aenter__(self) -> "JobWatchService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def repository(self) -> JobStatusRepository:
        if self._repository is None:
            self._repository = HttpJobStatusRepository(self._get_session(), self.config)
        return self._repository

    @property
    def push_channel(self) -> PushChannel:
        if self._push_channel is None:
            self._push_channel = WebSocketPushChannel(self._get_session(), self.config)
        return self._push_channel

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def open_tracker(
        self,
        job_id: str,
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> JobTracker:
        """
        Create and start a tracker for one job.

        Args:
            job_id: Job identifier
            on_update: Called with every emitted snapshot
            on_error: Called once with a TrackingError if tracking fails

        Returns:
            The running JobTracker
        """
        self._trackers = {tracker for tracker in self._trackers if not tracker.closed}
        tracker = JobTracker(
            job_id,
            self.repository,
            self.push_channel,
            on_update,
            on_error=on_error,
            config=self.config,
            publisher=self.publisher,
        )
        self._trackers.add(tracker)
        tracker.watch()
        return tracker

    def watch_job(
        self,
        job_id: str,
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """
        Watch a single job.

        Returns:
            unwatch function; calling it stops every further callback
        """
        return self.open_tracker(job_id, on_update, on_error).unwatch

    def open_aggregator(self, job_ids: Iterable[str], on_update: TableCallback) -> JobAggregator:
        """
        Create an aggregator polling a set of jobs.

        Args:
            job_ids: Jobs to track
            on_update: Called with the table after every change

        Returns:
            The running JobAggregator
        """
        aggregator = JobAggregator(self.repository, on_update, config=self.config)
        self._aggregators.add(aggregator)
        aggregator.watch(job_ids)
        return aggregator

    def watch_jobs(self, job_ids: Iterable[str], on_update: TableCallback) -> Callable[[], None]:
        """
        Watch a set of jobs on one shared polling cadence.

        Returns:
            unwatch_all function; calling it stops every further callback
        """
        aggregator = self.open_aggregator(job_ids, on_update)

        def unwatch_all() -> None:
            aggregator.unwatch_all()
            self._aggregators.discard(aggregator)

        return unwatch_all

    async def close(self) -> None:
        """Stop every tracker and aggregator and release the HTTP session."""
        for tracker in list(self._trackers):
            tracker.unwatch()
        for aggregator in list(self._aggregators):
            aggregator.unwatch_all()
        self._trackers.clear()
        self._aggregators.clear()

        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")
