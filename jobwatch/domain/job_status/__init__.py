"""
Job Status Domain

Snapshots of long-running pipeline jobs and the rules for emitting them.
"""

from .entities import JobStatusSnapshot
from .value_objects import DeliveryChannel, JobLogEntry, JobResult, JobStatus, LogLevel, LogSource
from .services import EmissionGuard, Verdict, is_older
from .repositories import JobStatusRepository
from .channels import PushChannel, PushChannelHandle

__all__ = [
    'JobStatusSnapshot',
    'JobStatus',
    'JobLogEntry',
    'JobResult',
    'LogLevel',
    'LogSource',
    'DeliveryChannel',
    'EmissionGuard',
    'Verdict',
    'is_older',
    'JobStatusRepository',
    'PushChannel',
    'PushChannelHandle',
]
