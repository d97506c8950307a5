"""
Job Status Entities

The immutable snapshot of a job's state and its translation from the
backend's snake_case payload.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .value_objects import JobLogEntry, JobResult, JobStatus, LogLevel, LogSource


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _count(value: Any) -> int:
    """Backend counters arrive either as numbers or as lists of items."""
    if value is None:
        return 0
    if isinstance(value, (list, tuple)):
        return len(value)
    return int(value)


def _enum_or_default(enum_cls, value: Any, default):
    """Unknown log metadata falls back to the default instead of rejecting the snapshot."""
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _parse_log(item: Any) -> JobLogEntry:
    # Plain strings come from the orchestrator without metadata
    if isinstance(item, str):
        return JobLogEntry(message=item)
    return JobLogEntry(
        message=str(item["message"]),
        level=_enum_or_default(LogLevel, item.get("level"), LogLevel.INFO),
        source=_enum_or_default(
            LogSource, item.get("service", item.get("source")), LogSource.ORCHESTRATOR
        ),
        timestamp=_parse_timestamp(item.get("timestamp")),
    )


def _parse_result(data: Dict[str, Any]) -> JobResult:
    return JobResult(
        harvested_items=_count(data.get("items_harvested")),
        processed_items=_count(data.get("items_processed")),
        dataset_rows_added=_count(data.get("items_inserted")),
        errors=_count(data.get("errors")),
        warnings=_count(data.get("warnings")),
    )


@dataclass(frozen=True)
class JobStatusSnapshot:
    """
    One immutable observation of a job's status.

    Field consistency rules:
    - progress is a percentage between 0 and 100
    - error is only set on failed jobs
    - result is only set on completed jobs
    - completed_at is only set on terminal jobs
    """

    job_id: str
    status: JobStatus
    progress: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    result: Optional[JobResult] = None
    logs: Tuple[JobLogEntry, ...] = field(default_factory=tuple)
    integration_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate snapshot values."""
        if not self.job_id:
            raise ValueError("job_id is required")
        if not 0 <= self.progress <= 100:
            raise ValueError(f"Progress must be between 0 and 100, got {self.progress}")
        if self.error is not None and self.status != JobStatus.FAILED:
            raise ValueError(f"error is only allowed on failed jobs, status is {self.status.value}")
        if self.result is not None and self.status != JobStatus.COMPLETED:
            raise ValueError(f"result is only allowed on completed jobs, status is {self.status.value}")
        if self.completed_at is not None and not self.status.is_terminal():
            raise ValueError(f"completed_at is only allowed on terminal jobs, status is {self.status.value}")

    def is_terminal(self) -> bool:
        """Check if the snapshot reports a terminal status."""
        return self.status.is_terminal()

    def is_active(self) -> bool:
        """Check if the job is still pending or running."""
        return self.status.is_active()

    @classmethod
    def from_backend(cls, data: Dict[str, Any], job_id: Optional[str] = None) -> "JobStatusSnapshot":
        """
        Translate a backend payload into a snapshot.

        This is the only place where backend field names are known.
        Fields that contradict the reported status are dropped.

        Args:
            data: Decoded JSON object from the pull or push endpoint
            job_id: Identifier to use when the payload does not carry one

        Returns:
            JobStatusSnapshot

        Raises:
            KeyError, TypeError, ValueError: If the payload is not a snapshot
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

        resolved_id = data.get("job_id") or data.get("id") or job_id
        status = JobStatus(data["status"])

        raw_progress = data.get("progress")
        progress = int(round(float(raw_progress))) if raw_progress is not None else 0

        error = data.get("error_message", data.get("error"))
        raw_result = data.get("result")
        completed_at = _parse_timestamp(data.get("completed_at"))

        return cls(
            job_id=str(resolved_id) if resolved_id is not None else "",
            status=status,
            progress=progress,
            started_at=_parse_timestamp(data.get("started_at")),
            completed_at=completed_at if status.is_terminal() else None,
            error=str(error) if error and status == JobStatus.FAILED else None,
            result=(
                _parse_result(raw_result)
                if isinstance(raw_result, dict) and status == JobStatus.COMPLETED
                else None
            ),
            logs=tuple(_parse_log(item) for item in (data.get("logs") or [])),
            integration_id=data.get("integration_id"),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert snapshot to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "integration_id": self.integration_id,
            "status": self.status.value,
            "progress": self.progress,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "error": self.error,
            "result": self.result.to_dict() if self.result else None,
            "logs": [entry.to_dict() for entry in self.logs],
        }
