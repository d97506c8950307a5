"""
Multi-Job Aggregator

Tracks many jobs under one shared polling cadence and keeps a table of
their latest snapshots.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, Optional, Set, Union

from jobwatch.config.settings import WatchConfig
from jobwatch.domain.errors import DomainError
from jobwatch.domain.job_status import EmissionGuard, JobStatusRepository, JobStatusSnapshot

from .poll_loop import PollLoop

logger = logging.getLogger(__name__)

AggregatorTable = Dict[str, Optional[JobStatusSnapshot]]
TableCallback = Callable[[AggregatorTable], None]


class JobAggregator:
    """
    Polls a set of jobs on a single shared timer.

    Every round fetches all watched, non-terminal jobs in parallel and
    merges the successful results into the table. A failed fetch leaves
    that job's entry untouched. Once every entry is terminal the cadence
    widens to the idle interval (or pauses when none is configured).
    No push channels are used.
    """

    def __init__(
        self,
        repository: JobStatusRepository,
        on_update: TableCallback,
        config: Optional[WatchConfig] = None,
    ):
        """
        Initialize the aggregator. Nothing is polled until watch() is called.

        Args:
            repository: Status fetcher shared by all jobs
            on_update: Called with a copy of the table after every change
            config: Cadences
        """
        self._repository = repository
        self._on_update = on_update
        self._config = config or WatchConfig()

        self._table: AggregatorTable = {}
        self._guards: Dict[str, EmissionGuard] = {}
        self._errors: Dict[str, DomainError] = {}
        self._generation = 0
        self._loop: Optional[PollLoop] = None
        self._in_flight_generation: Optional[int] = None
        self._round_requested = False
        self._round_tasks: Set[asyncio.Task] = set()

    @property
    def table(self) -> AggregatorTable:
        """Copy of the current job_id -> snapshot table."""
        return dict(self._table)

    @property
    def errors(self) -> Dict[str, DomainError]:
        """Last fetch error per job, cleared by the next successful fetch."""
        return dict(self._errors)

    @property
    def job_ids(self) -> Set[str]:
        return set(self._table)

    @property
    def interval(self) -> Optional[float]:
        """Current polling interval, or None while paused."""
        if self._loop is None or not self._loop.running:
            return None
        return self._loop.interval

    def watch(self, job_ids: Iterable[str]) -> None:
        """
        Replace the watched set.

        New jobs get an empty entry and are fetched right away, after the
        current round if one is in flight. Jobs no longer in the set are
        removed from the table and the shrunken table is reported.

        Args:
            job_ids: Complete set of jobs to track
        """
        wanted = set(job_ids)
        removed = set(self._table) - wanted
        added = wanted - set(self._table)

        for job_id in removed:
            self._table.pop(job_id, None)
            self._guards.pop(job_id, None)
            self._errors.pop(job_id, None)
        for job_id in added:
            self._table[job_id] = None
            self._guards[job_id] = EmissionGuard(job_id)

        if removed or added:
            logger.debug(
                f"Aggregator now watching {len(self._table)} job(s) "
                f"(+{len(added)} / -{len(removed)})"
            )

        self._evaluate_cadence()
        if removed:
            self._notify()
        if added:
            self._schedule_round()

    def add(self, job_id: str) -> None:
        """Start tracking one more job."""
        self.watch(set(self._table) | {job_id})

    def remove(self, job_id: str) -> None:
        """Stop tracking a job and drop its entry."""
        self.watch(set(self._table) - {job_id})

    def unwatch_all(self) -> None:
        """
        Stop polling and forget every job.

        Takes effect synchronously: rounds already in flight are discarded.
        Calling it twice is a no-op.
        """
        self._generation += 1
        self._stop_loop()
        self._table.clear()
        self._guards.clear()
        self._errors.clear()
        self._in_flight_generation = None
        self._round_requested = False

    async def refetch(self) -> None:
        """Run one fetch round now, unless a round is already in flight."""
        await self._tick(self._generation)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def _schedule_round(self) -> None:
        task = asyncio.get_running_loop().create_task(
            self._tick(self._generation, requested=True)
        )
        self._round_tasks.add(task)
        task.add_done_callback(self._round_tasks.discard)

    async def _tick(self, generation: int, requested: bool = False) -> None:
        if generation != self._generation:
            return
        if self._in_flight_generation == generation:
            if requested:
                # Jobs added mid-round are fetched as soon as it finishes
                self._round_requested = True
            logger.debug("Aggregator round skipped, previous round still in flight")
            return
        await self._fetch_round(generation)

    async def _fetch_one(self, job_id: str) -> Union[JobStatusSnapshot, DomainError]:
        try:
            return await self._repository.fetch(job_id)
        except DomainError as e:
            logger.warning(f"Aggregator fetch of job {job_id} failed: {e}")
            return e

    async def _fetch_round(self, generation: int) -> None:
        targets = [
            job_id
            for job_id, snapshot in self._table.items()
            if snapshot is None or not snapshot.is_terminal()
        ]
        if not targets:
            self._evaluate_cadence()
            return

        self._in_flight_generation = generation
        try:
            outcomes = await asyncio.gather(*(self._fetch_one(job_id) for job_id in targets))
        finally:
            if self._in_flight_generation == generation:
                self._in_flight_generation = None
            if self._round_requested and generation == self._generation:
                self._round_requested = False
                self._schedule_round()

        if generation != self._generation:
            return

        changed = False
        for job_id, outcome in zip(targets, outcomes):
            guard = self._guards.get(job_id)
            if guard is None:
                # Removed while the round was in flight
                continue
            if isinstance(outcome, DomainError):
                self._errors[job_id] = outcome
                continue

            self._errors.pop(job_id, None)
            verdict = guard.offer(outcome)
            if verdict.accepted:
                self._table[job_id] = outcome
                changed = True
            else:
                logger.debug(f"Aggregator discarded snapshot for job {job_id}: {verdict.value}")

        if changed:
            self._notify()

        if generation == self._generation:
            self._evaluate_cadence()

    def _notify(self) -> None:
        try:
            self._on_update(self.table)
        except Exception as e:
            logger.error(f"Aggregator update callback raised: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Cadence
    # ------------------------------------------------------------------

    def _all_terminal(self) -> bool:
        return all(
            snapshot is not None and snapshot.is_terminal()
            for snapshot in self._table.values()
        )

    def _evaluate_cadence(self) -> None:
        if not self._table:
            self._stop_loop()
            return

        normal = self._config.aggregate_poll_interval
        if not self._all_terminal():
            if self._loop is None or self._loop.interval != normal:
                # Restart so the normal cadence applies immediately
                self._restart_loop(normal)
            return

        idle = self._config.aggregate_idle_interval
        if idle is None:
            if self._loop is not None:
                logger.info(f"All {len(self._table)} watched job(s) are terminal, polling paused")
                self._stop_loop()
        elif self._loop is None:
            self._restart_loop(idle)
        elif self._loop.interval != idle:
            logger.info(
                f"All {len(self._table)} watched job(s) are terminal, "
                f"polling widened to {idle}s"
            )
            self._loop.set_interval(idle)

    def _restart_loop(self, interval: float) -> None:
        self._stop_loop()
        generation = self._generation
        self._loop = PollLoop.start(
            interval, lambda: self._tick(generation), name="aggregator"
        )

    def _stop_loop(self) -> None:
        if self._loop is not None:
            self._loop.stop()
        self._loop = None
