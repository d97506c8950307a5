"""
Domain Events

Immutable records of significant tracking state changes.
Events decouple side effects (logging, diagnostics) from the tracking logic.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from .job_status.entities import JobStatusSnapshot


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Base class for all domain events.

    Attributes:
        aggregate_id: ID of the job the event is about
        occurred_at: Timestamp when the event occurred
    """
    aggregate_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event
        """
        return {
            "event_type": self.__class__.__name__,
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class JobSnapshotReceivedEvent(DomainEvent):
    """
    Event emitted when a snapshot is accepted and handed to the caller.

    Attributes:
        snapshot: The emitted snapshot
        channel: Delivery channel value ("push", "poll" or "fetch")
    """
    snapshot: JobStatusSnapshot
    channel: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "snapshot": self.snapshot.to_dict(),
            "channel": self.channel,
        })
        return base_dict


@dataclass(frozen=True)
class SnapshotDiscardedEvent(DomainEvent):
    """
    Event emitted when a snapshot is dropped by the emission guard.

    Attributes:
        status: Status reported by the dropped snapshot
        channel: Channel that delivered it
        reason: Guard verdict value
    """
    status: str
    channel: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "status": self.status,
            "channel": self.channel,
            "reason": self.reason,
        })
        return base_dict


@dataclass(frozen=True)
class ChannelSwitchedEvent(DomainEvent):
    """
    Event emitted when a tracker changes its authoritative channel.

    Attributes:
        from_channel: Previous channel value
        to_channel: New channel value
        reason: Short human-readable cause
    """
    from_channel: str
    to_channel: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "from_channel": self.from_channel,
            "to_channel": self.to_channel,
            "reason": self.reason,
        })
        return base_dict


@dataclass(frozen=True)
class TrackingFailedEvent(DomainEvent):
    """
    Event emitted when tracking ends with a terminal error.

    Attributes:
        error_message: Technical error message
        error_category: Error category value
    """
    error_message: str
    error_category: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "error_message": self.error_message,
            "error_category": self.error_category,
        })
        return base_dict
