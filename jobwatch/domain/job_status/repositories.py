"""
Job Status Repositories

Read-only repository interface for pulling job status snapshots.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod

from .entities import JobStatusSnapshot


class JobStatusRepository(ABC):
    """Abstract single-job status fetcher."""

    @abstractmethod
    async def fetch(self, job_id: str) -> JobStatusSnapshot:
        """
        Fetch the current snapshot of a job.

        One round trip per call. No retry happens here; retry policy
        belongs to the caller.

        Args:
            job_id: Job identifier

        Returns:
            JobStatusSnapshot

        Raises:
            JobNotFoundError: If the backend has no record of the job
            TransportError: For any network or protocol failure
        """
        pass
