"""
Logging Event Handler

Infrastructure event handler for logging domain events.
Domain layer remains unaware of logging infrastructure.
"""

import logging

from jobwatch.domain.events import (
    ChannelSwitchedEvent,
    DomainEvent,
    JobSnapshotReceivedEvent,
    SnapshotDiscardedEvent,
    TrackingFailedEvent,
)


class LoggingEventHandler:
    """
    Infrastructure event handler for logging domain events.

    Subscribe it for DomainEvent to receive every event.
    """

    def __init__(self, logger: logging.Logger):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance
        """
        self.logger = logger

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event by logging it.

        Args:
            event: Domain event to log
        """
        try:
            if isinstance(event, JobSnapshotReceivedEvent):
                self._handle_snapshot(event)
            elif isinstance(event, SnapshotDiscardedEvent):
                self._handle_discarded(event)
            elif isinstance(event, ChannelSwitchedEvent):
                self._handle_channel_switched(event)
            elif isinstance(event, TrackingFailedEvent):
                self._handle_tracking_failed(event)
            else:
                self.logger.debug(
                    f"Unhandled event: {event.__class__.__name__} "
                    f"(aggregate_id={event.aggregate_id})"
                )
        except Exception as e:
            self.logger.error(
                f"Error in logging event handler for {event.__class__.__name__}: {e}",
                exc_info=True,
            )

    def _handle_snapshot(self, event: JobSnapshotReceivedEvent) -> None:
        snapshot = event.snapshot
        if snapshot.is_terminal():
            self.logger.info(
                f"Job {event.aggregate_id} reached {snapshot.status.value} "
                f"via {event.channel}"
            )
        else:
            self.logger.debug(
                f"Job {event.aggregate_id} {snapshot.status.value} "
                f"{snapshot.progress}% via {event.channel}"
            )

    def _handle_discarded(self, event: SnapshotDiscardedEvent) -> None:
        self.logger.debug(
            f"Discarded {event.status} snapshot for job {event.aggregate_id} "
            f"from {event.channel}: {event.reason}"
        )

    def _handle_channel_switched(self, event: ChannelSwitchedEvent) -> None:
        self.logger.info(
            f"Job {event.aggregate_id} channel {event.from_channel} -> "
            f"{event.to_channel}: {event.reason}"
        )

    def _handle_tracking_failed(self, event: TrackingFailedEvent) -> None:
        self.logger.warning(
            f"Tracking failed: job_id={event.aggregate_id}, "
            f"error={event.error_message}, category={event.error_category}"
        )
