"""
Job Status Services

Domain services deciding which snapshots may be emitted to a caller.
"""

from enum import Enum
from typing import Optional

from .entities import JobStatusSnapshot


class Verdict(Enum):
    """Outcome of offering a snapshot to an EmissionGuard."""
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    STALE = "stale"
    AFTER_TERMINAL = "after_terminal"
    WRONG_JOB = "wrong_job"

    @property
    def accepted(self) -> bool:
        return self is Verdict.ACCEPTED


def is_older(candidate: JobStatusSnapshot, reference: JobStatusSnapshot) -> bool:
    """
    Check whether candidate describes an earlier state than reference.

    Status rank decides first (pending < running < terminal). Within the
    same rank the backend's updated_at decides; when either side lacks
    it, the larger progress is considered newer.
    """
    if candidate.status.rank != reference.status.rank:
        return candidate.status.rank < reference.status.rank
    if candidate.updated_at is not None and reference.updated_at is not None:
        return candidate.updated_at < reference.updated_at
    return candidate.progress < reference.progress


class EmissionGuard:
    """
    Gatekeeper for the snapshot stream of a single job.

    Keeps the last emitted snapshot and rejects anything that would make
    the emitted sequence regress, repeat itself, or continue after a
    terminal snapshot.
    """

    def __init__(self, job_id: str):
        self.job_id = job_id
        self._last: Optional[JobStatusSnapshot] = None

    @property
    def last(self) -> Optional[JobStatusSnapshot]:
        return self._last

    @property
    def closed(self) -> bool:
        """True once a terminal snapshot has been accepted."""
        return self._last is not None and self._last.is_terminal()

    def evaluate(self, snapshot: JobStatusSnapshot) -> Verdict:
        """Judge a snapshot without recording it."""
        if snapshot.job_id != self.job_id:
            return Verdict.WRONG_JOB
        if self._last is None:
            return Verdict.ACCEPTED
        if self.closed:
            return Verdict.AFTER_TERMINAL
        if snapshot == self._last:
            return Verdict.DUPLICATE
        if is_older(snapshot, self._last):
            return Verdict.STALE
        return Verdict.ACCEPTED

    def offer(self, snapshot: JobStatusSnapshot) -> Verdict:
        """
        Judge a snapshot and record it when accepted.

        Args:
            snapshot: Snapshot received from any channel

        Returns:
            Verdict describing whether the snapshot may be emitted
        """
        verdict = self.evaluate(snapshot)
        if verdict.accepted:
            self._last = snapshot
        return verdict
