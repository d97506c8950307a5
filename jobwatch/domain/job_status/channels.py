"""
Job Status Push Channels

Interfaces for per-job push connections delivering snapshots.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Callable

from ..errors import TransportError
from .entities import JobStatusSnapshot

SnapshotCallback = Callable[[JobStatusSnapshot], None]
FailureCallback = Callable[[TransportError], None]


class PushChannelHandle(ABC):
    """
    One open push connection scoped to a single job.

    Contract:
    - snapshots reach the callback in wire order
    - the failure callback fires at most once, after which the handle is closed
    - no callback fires after close()
    """

    job_id: str

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the handle has been closed or has failed."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the connection. Closing twice is a no-op."""
        pass


class PushChannel(ABC):
    """Factory opening push connections. Never reconnects on its own."""

    @abstractmethod
    def open(
        self,
        job_id: str,
        on_snapshot: SnapshotCallback,
        on_failure: FailureCallback,
    ) -> PushChannelHandle:
        """
        Open a push connection for a job.

        Returns immediately; the connection is established in the
        background and a refused connection is reported through
        on_failure.

        Args:
            job_id: Job identifier
            on_snapshot: Called for every well-formed inbound frame
            on_failure: Called exactly once when the connection fails or closes

        Returns:
            PushChannelHandle owning the connection
        """
        pass

    def close(self, handle: PushChannelHandle) -> None:
        """Release a handle previously returned by open()."""
        handle.close()
