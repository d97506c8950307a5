"""
Watch Configuration

Endpoint locations, cadences and retry bounds for job status tracking.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional


def _optional_float(value: Optional[str]) -> Optional[float]:
    # "0" or an empty value pauses instead of widening
    if value is None or value.strip() == "":
        return None
    parsed = float(value)
    return parsed if parsed > 0 else None


@dataclass(frozen=True)
class WatchConfig:
    """
    Job status tracking settings.

    Intervals are in seconds. An aggregate_idle_interval of None pauses
    the aggregator once every tracked job is terminal.
    """

    base_url: str = "http://localhost:8000"
    ws_url: str = "ws://localhost:8000"
    status_path: str = "/jobs/{job_id}"
    push_path: str = "/ws/jobs/{job_id}"
    auth_token: Optional[str] = None
    request_timeout: float = 10.0
    fallback_poll_interval: float = 2.0
    aggregate_poll_interval: float = 5.0
    aggregate_idle_interval: Optional[float] = 30.0
    push_retry_ticks: int = 2
    max_push_retry_ticks: int = 30
    max_reconnect_attempts: int = 5
    max_consecutive_poll_failures: int = 10
    ws_heartbeat: Optional[float] = 25.0

    def __post_init__(self):
        """Validate settings."""
        for name in ("request_timeout", "fallback_poll_interval", "aggregate_poll_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.aggregate_idle_interval is not None and self.aggregate_idle_interval <= 0:
            raise ValueError(
                f"aggregate_idle_interval must be positive or None, got {self.aggregate_idle_interval}"
            )
        if self.push_retry_ticks < 1:
            raise ValueError(f"push_retry_ticks must be at least 1, got {self.push_retry_ticks}")
        if self.max_push_retry_ticks < self.push_retry_ticks:
            raise ValueError("max_push_retry_ticks must not be smaller than push_retry_ticks")
        if self.max_reconnect_attempts < 0:
            raise ValueError(f"max_reconnect_attempts must not be negative, got {self.max_reconnect_attempts}")
        if self.max_consecutive_poll_failures < 1:
            raise ValueError(
                f"max_consecutive_poll_failures must be at least 1, got {self.max_consecutive_poll_failures}"
            )
        if "{job_id}" not in self.status_path or "{job_id}" not in self.push_path:
            raise ValueError("status_path and push_path must contain a {job_id} placeholder")

    @classmethod
    def from_env(cls, **overrides) -> "WatchConfig":
        """
        Build configuration from JOBWATCH_* environment variables.

        Args:
            **overrides: Explicit values taking precedence over the environment

        Returns:
            WatchConfig instance
        """
        defaults = cls()
        config = cls(
            base_url=os.getenv("JOBWATCH_BASE_URL", defaults.base_url),
            ws_url=os.getenv("JOBWATCH_WS_URL", defaults.ws_url),
            status_path=os.getenv("JOBWATCH_STATUS_PATH", defaults.status_path),
            push_path=os.getenv("JOBWATCH_PUSH_PATH", defaults.push_path),
            auth_token=os.getenv("JOBWATCH_AUTH_TOKEN") or None,
            request_timeout=float(os.getenv("JOBWATCH_REQUEST_TIMEOUT", defaults.request_timeout)),
            fallback_poll_interval=float(
                os.getenv("JOBWATCH_FALLBACK_POLL_INTERVAL", defaults.fallback_poll_interval)
            ),
            aggregate_poll_interval=float(
                os.getenv("JOBWATCH_AGGREGATE_POLL_INTERVAL", defaults.aggregate_poll_interval)
            ),
            aggregate_idle_interval=_optional_float(
                os.getenv("JOBWATCH_AGGREGATE_IDLE_INTERVAL", str(defaults.aggregate_idle_interval))
            ),
            push_retry_ticks=int(os.getenv("JOBWATCH_PUSH_RETRY_TICKS", defaults.push_retry_ticks)),
            max_push_retry_ticks=int(
                os.getenv("JOBWATCH_MAX_PUSH_RETRY_TICKS", defaults.max_push_retry_ticks)
            ),
            max_reconnect_attempts=int(
                os.getenv("JOBWATCH_MAX_RECONNECT_ATTEMPTS", defaults.max_reconnect_attempts)
            ),
            max_consecutive_poll_failures=int(
                os.getenv("JOBWATCH_MAX_POLL_FAILURES", defaults.max_consecutive_poll_failures)
            ),
            ws_heartbeat=_optional_float(
                os.getenv("JOBWATCH_WS_HEARTBEAT", str(defaults.ws_heartbeat))
            ),
        )
        return replace(config, **overrides) if overrides else config

    def status_url(self, job_id: str) -> str:
        """Pull endpoint for a job."""
        return self.base_url.rstrip("/") + self.status_path.format(job_id=job_id)

    def push_url(self, job_id: str) -> str:
        """Push endpoint for a job."""
        return self.ws_url.rstrip("/") + self.push_path.format(job_id=job_id)

    def push_retry_delay(self, failed_attempts: int) -> int:
        """
        Poll ticks to wait before the next push reconnect attempt.

        Doubles with every failed attempt, capped at max_push_retry_ticks.
        """
        return min(self.push_retry_ticks * (2 ** failed_attempts), self.max_push_retry_ticks)
