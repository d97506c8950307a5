"""
Single-Job Tracker

Reconciles the push channel and the poll loop into one state machine
for a single job, emitting a monotonic stream of snapshots.
"""

import asyncio
import itertools
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from jobwatch.config.settings import WatchConfig
from jobwatch.domain.errors import (
    DomainError,
    ErrorCategory,
    JobNotFoundError,
    TrackingError,
    TransportError,
    categorize_error,
)
from jobwatch.domain.events import (
    ChannelSwitchedEvent,
    JobSnapshotReceivedEvent,
    SnapshotDiscardedEvent,
    TrackingFailedEvent,
)
from jobwatch.domain.job_status import (
    DeliveryChannel,
    EmissionGuard,
    JobStatusRepository,
    JobStatusSnapshot,
    PushChannel,
    PushChannelHandle,
)

from .arbitration import ChannelRace
from .event_publisher import EventPublisher
from .poll_loop import PollLoop

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[JobStatusSnapshot], None]
ErrorCallback = Callable[[TrackingError], None]

# Label for snapshots obtained outside the push/poll channels
FETCH = "fetch"


class TrackerState(Enum):
    """Lifecycle of a JobTracker."""
    IDLE = "idle"
    LOADING = "loading"
    PUSH_ACTIVE = "push_active"
    POLL_ACTIVE = "poll_active"
    CLOSED = "closed"


class _PushAttempt:
    """One push connection opened by the tracker, identified by object identity."""

    def __init__(self, generation: int):
        self.generation = generation
        self.handle: Optional[PushChannelHandle] = None

    def close(self) -> None:
        if self.handle is not None:
            self.handle.close()


class JobTracker:
    """
    Tracks one job until it reaches a terminal status or the caller walks away.

    Owns at most one authoritative channel at a time. Every asynchronous
    callback captures the session generation when it is scheduled and
    becomes a no-op once unwatch() or a terminal snapshot has closed the
    session.
    """

    def __init__(
        self,
        job_id: str,
        repository: JobStatusRepository,
        push_channel: Optional[PushChannel],
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback] = None,
        config: Optional[WatchConfig] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        """
        Initialize a tracker. Nothing happens until watch() is called.

        Args:
            job_id: Job identifier
            repository: Status fetcher used for the initial read and polling
            push_channel: Push channel factory, or None to poll only
            on_update: Called with every emitted snapshot
            on_error: Called once with a TrackingError if tracking fails
            config: Cadences and retry bounds
            publisher: Event publisher for lifecycle events
        """
        self.job_id = job_id
        self._repository = repository
        self._push_channel = push_channel
        self._on_update = on_update
        self._on_error = on_error
        self._config = config or WatchConfig()
        self._publisher = publisher or EventPublisher()

        self._guard = EmissionGuard(job_id)
        self._state = TrackerState.IDLE
        self._channel = DeliveryChannel.NONE
        self._generation = 0
        self._closed = asyncio.Event()
        self._initial_task: Optional[asyncio.Task] = None

        self._push: Optional[_PushAttempt] = None
        self._candidate: Optional[_PushAttempt] = None
        self._race: Optional[ChannelRace] = None
        self._poll: Optional[PollLoop] = None
        self._poll_ids = itertools.count(1)
        self._poll_id: Optional[int] = None

        self.reconnect_attempts = 0
        self._ticks_until_push_retry = 0
        self._consecutive_failures = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def channel(self) -> DeliveryChannel:
        return self._channel

    @property
    def last_snapshot(self) -> Optional[JobStatusSnapshot]:
        return self._guard.last

    @property
    def closed(self) -> bool:
        return self._state is TrackerState.CLOSED

    def watch(self) -> None:
        """
        Start tracking: one immediate fetch, then push or poll.

        Must be called from a running event loop.

        Raises:
            ValueError: If the tracker was already started
        """
        if self._state is not TrackerState.IDLE:
            raise ValueError(f"Cannot watch job {self.job_id} in {self._state.value} state")

        self._state = TrackerState.LOADING
        logger.debug(f"Watching job {self.job_id}")
        self._initial_task = asyncio.get_running_loop().create_task(
            self._initial_fetch(self._generation)
        )

    def unwatch(self) -> None:
        """
        Stop tracking without emitting anything further.

        Takes effect synchronously: results of fetches or channel events
        already in flight are discarded. Calling it twice is a no-op.
        """
        if self._state is TrackerState.CLOSED:
            return
        logger.debug(f"Unwatching job {self.job_id} from {self._state.value} state")
        self._close()
        self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until the tracker reaches the closed state."""
        await self._closed.wait()

    async def refetch(self) -> Optional[JobStatusSnapshot]:
        """
        Fetch the job once, outside the regular channels.

        The result passes through the same emission rules as channel
        snapshots.

        Returns:
            The fetched snapshot, or None if the fetch failed or the
            tracker is not watching
        """
        if self._state in (TrackerState.IDLE, TrackerState.CLOSED):
            return None
        generation = self._generation
        try:
            snapshot = await self._repository.fetch(self.job_id)
        except DomainError as e:
            logger.warning(f"Refetch of job {self.job_id} failed: {e}")
            return None
        if not self._is_live(generation):
            return None
        self._deliver(snapshot, FETCH)
        return snapshot

    # ------------------------------------------------------------------
    # Initial fetch
    # ------------------------------------------------------------------

    async def _initial_fetch(self, generation: int) -> None:
        try:
            snapshot = await self._repository.fetch(self.job_id)
        except JobNotFoundError as e:
            if self._is_live(generation):
                self._fail(ErrorCategory.JOB_NOT_FOUND, str(e), cause=e)
            return
        except TransportError as e:
            if not self._is_live(generation):
                return
            logger.warning(f"Initial fetch of job {self.job_id} failed: {e}")
            self._consecutive_failures = 1
            self._start_polling(f"initial fetch failed: {e}")
            return

        if not self._is_live(generation):
            return
        self._deliver(snapshot, FETCH)
        if not self._is_live(generation):
            return

        if self._push_channel is None:
            self._start_polling("no push channel configured")
        else:
            self._open_push()

    # ------------------------------------------------------------------
    # Push channel
    # ------------------------------------------------------------------

    def _open_attempt(self) -> _PushAttempt:
        attempt = _PushAttempt(self._generation)
        attempt.handle = self._push_channel.open(
            self.job_id,
            lambda snapshot: self._on_push_snapshot(attempt, snapshot),
            lambda error: self._on_push_failure(attempt, error),
        )
        return attempt

    def _open_push(self) -> None:
        self._state = TrackerState.PUSH_ACTIVE
        self._switch_channel(DeliveryChannel.PUSH, "job still active")
        self._push = self._open_attempt()

    def _on_push_snapshot(self, attempt: _PushAttempt, snapshot: JobStatusSnapshot) -> None:
        if not self._is_live(attempt.generation):
            return

        if attempt is self._push:
            self._deliver(snapshot, DeliveryChannel.PUSH.value)
        elif attempt is self._candidate and self._race is not None:
            if not self._race.claim(DeliveryChannel.PUSH):
                return
            # Push won: it becomes authoritative and polling stops
            self._stop_polling()
            self._candidate = None
            self._race = None
            self._push = attempt
            self.reconnect_attempts = 0
            self._consecutive_failures = 0
            self._state = TrackerState.PUSH_ACTIVE
            self._switch_channel(DeliveryChannel.PUSH, "push channel reconnected")
            self._deliver(snapshot, DeliveryChannel.PUSH.value)

    def _on_push_failure(self, attempt: _PushAttempt, error: TransportError) -> None:
        if not self._is_live(attempt.generation):
            return

        if attempt is self._push:
            logger.warning(f"Push channel for job {self.job_id} failed: {error}")
            self._push = None
            attempt.close()
            self._start_polling(f"push channel failed: {error}")
        elif attempt is self._candidate:
            logger.info(
                f"Push reconnect for job {self.job_id} failed "
                f"(attempt {self.reconnect_attempts}/{self._config.max_reconnect_attempts}): {error}"
            )
            self._release_candidate()

    def _open_candidate(self) -> None:
        self.reconnect_attempts += 1
        logger.info(
            f"Retrying push channel for job {self.job_id} "
            f"(attempt {self.reconnect_attempts}/{self._config.max_reconnect_attempts})"
        )
        self._race = ChannelRace(DeliveryChannel.PUSH, DeliveryChannel.POLL)
        self._candidate = self._open_attempt()

    def _release_candidate(self) -> None:
        if self._candidate is not None:
            self._candidate.close()
        self._candidate = None
        self._race = None
        self._ticks_until_push_retry = self._config.push_retry_delay(self.reconnect_attempts)
        if self.reconnect_attempts >= self._config.max_reconnect_attempts:
            logger.info(
                f"Giving up on push channel for job {self.job_id} after "
                f"{self.reconnect_attempts} attempt(s), polling only"
            )

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def _start_polling(self, reason: str) -> None:
        self._state = TrackerState.POLL_ACTIVE
        self._switch_channel(DeliveryChannel.POLL, reason)
        self._ticks_until_push_retry = self._config.push_retry_delay(self.reconnect_attempts)

        generation = self._generation
        poll_id = next(self._poll_ids)
        self._poll_id = poll_id
        self._poll = PollLoop.start(
            self._config.fallback_poll_interval,
            lambda: self._poll_tick(generation, poll_id),
            name=f"poll[{self.job_id}]",
        )

    def _stop_polling(self) -> None:
        if self._poll is not None:
            self._poll.stop()
        self._poll = None
        self._poll_id = None

    def _poll_is_current(self, generation: int, poll_id: int) -> bool:
        return self._is_live(generation) and poll_id == self._poll_id

    async def _poll_tick(self, generation: int, poll_id: int) -> None:
        if not self._poll_is_current(generation, poll_id):
            return

        try:
            snapshot = await self._repository.fetch(self.job_id)
        except (JobNotFoundError, TransportError) as e:
            if not self._poll_is_current(generation, poll_id):
                return
            self._consecutive_failures += 1
            logger.warning(
                f"Poll of job {self.job_id} failed "
                f"({self._consecutive_failures}/{self._config.max_consecutive_poll_failures}): {e}"
            )
            if self._consecutive_failures > self._config.max_consecutive_poll_failures:
                self._fail(
                    ErrorCategory.TRACKING_ABANDONED,
                    f"{self._consecutive_failures} consecutive poll failures, last: {e}",
                    cause=e,
                )
                return
            self._advance_push_retry()
            return

        if not self._poll_is_current(generation, poll_id):
            return
        self._consecutive_failures = 0

        lost_race = self._race is not None and self._race.claim(DeliveryChannel.POLL)
        if lost_race:
            logger.debug(f"Poll answered first for job {self.job_id}, dropping push candidate")
            self._release_candidate()

        self._deliver(snapshot, DeliveryChannel.POLL.value)
        if not lost_race and self._poll_is_current(generation, poll_id):
            self._advance_push_retry()

    def _advance_push_retry(self) -> None:
        if self._push_channel is None or self._candidate is not None:
            return
        if self.reconnect_attempts >= self._config.max_reconnect_attempts:
            return
        self._ticks_until_push_retry -= 1
        if self._ticks_until_push_retry <= 0:
            self._open_candidate()

    # ------------------------------------------------------------------
    # Emission and teardown
    # ------------------------------------------------------------------

    def _is_live(self, generation: int) -> bool:
        return generation == self._generation and self._state is not TrackerState.CLOSED

    def _deliver(self, snapshot: JobStatusSnapshot, channel: str) -> None:
        verdict = self._guard.offer(snapshot)
        now = datetime.now(timezone.utc)

        if not verdict.accepted:
            self._publisher.publish(SnapshotDiscardedEvent(
                aggregate_id=self.job_id,
                occurred_at=now,
                status=snapshot.status.value,
                channel=channel,
                reason=verdict.value,
            ))
            return

        self._publisher.publish(JobSnapshotReceivedEvent(
            aggregate_id=self.job_id,
            occurred_at=now,
            snapshot=snapshot,
            channel=channel,
        ))

        if snapshot.is_terminal():
            self._close()
            self._notify_update(snapshot)
            self._closed.set()
        else:
            self._notify_update(snapshot)

    def _fail(
        self,
        category: ErrorCategory,
        technical_message: str,
        cause: Optional[Exception] = None,
    ) -> None:
        context = {}
        if cause is not None:
            context["cause"] = categorize_error(cause).value
            if getattr(cause, "status_code", None) is not None:
                context["status_code"] = cause.status_code
        error = TrackingError(self.job_id, category, technical_message, context)
        self._close()
        self._publisher.publish(TrackingFailedEvent(
            aggregate_id=self.job_id,
            occurred_at=datetime.now(timezone.utc),
            error_message=technical_message,
            error_category=category.value,
        ))
        if self._on_error is None:
            logger.error(f"Tracking of job {self.job_id} failed: {technical_message}")
        else:
            try:
                self._on_error(error)
            except Exception as e:
                logger.error(f"Error callback for job {self.job_id} raised: {e}", exc_info=True)
        self._closed.set()

    def _close(self) -> None:
        # Invalidate every callback scheduled so far
        self._generation += 1
        self._stop_polling()
        for attempt in (self._push, self._candidate):
            if attempt is not None:
                attempt.close()
        self._push = None
        self._candidate = None
        self._race = None
        self._state = TrackerState.CLOSED
        self._channel = DeliveryChannel.NONE

    def _notify_update(self, snapshot: JobStatusSnapshot) -> None:
        try:
            self._on_update(snapshot)
        except Exception as e:
            logger.error(f"Update callback for job {self.job_id} raised: {e}", exc_info=True)

    def _switch_channel(self, channel: DeliveryChannel, reason: str) -> None:
        previous = self._channel
        self._channel = channel
        if previous is channel:
            return
        self._publisher.publish(ChannelSwitchedEvent(
            aggregate_id=self.job_id,
            occurred_at=datetime.now(timezone.utc),
            from_channel=previous.value,
            to_channel=channel.value,
            reason=reason,
        ))
