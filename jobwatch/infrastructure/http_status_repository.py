"""
HTTP Job Status Repository

Concrete aiohttp-based implementation of the JobStatusRepository interface.
"""

import asyncio
import logging
from typing import Dict, Optional

import aiohttp

from jobwatch.config.settings import WatchConfig
from jobwatch.domain.errors import JobNotFoundError, TransportError
from jobwatch.domain.job_status import JobStatusRepository, JobStatusSnapshot

logger = logging.getLogger(__name__)


def build_headers(config: WatchConfig) -> Dict[str, str]:
    """Request headers shared by the pull and push endpoints."""
    headers = {"Accept": "application/json"}
    if config.auth_token:
        headers["Authorization"] = f"Bearer {config.auth_token}"
    return headers


class HttpJobStatusRepository(JobStatusRepository):
    """
    Pulls job snapshots from GET {base_url}/jobs/{job_id}.

    The session is owned by the caller and may be shared with the push
    channel.
    """

    def __init__(self, session: aiohttp.ClientSession, config: Optional[WatchConfig] = None):
        """
        Initialize with an HTTP session.

        Args:
            session: aiohttp ClientSession used for every request
            config: Endpoint and timeout settings
        """
        self.session = session
        self.config = config or WatchConfig()
        self.timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)

    async def fetch(self, job_id: str) -> JobStatusSnapshot:
        """Fetch the current snapshot of a job."""
        url = self.config.status_url(job_id)

        try:
            async with self.session.get(
                url, headers=build_headers(self.config), timeout=self.timeout
            ) as response:
                if response.status == 404:
                    raise JobNotFoundError(f"Job {job_id} not found")
                if response.status != 200:
                    error_text = await response.text()
                    raise TransportError(
                        f"Status request for job {job_id} failed with HTTP "
                        f"{response.status}: {error_text[:200]}",
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise TransportError(f"HTTP client error fetching job {job_id}: {e}", original_error=e)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timed out after {self.config.request_timeout}s fetching job {job_id}",
                original_error=e,
            )
        except ValueError as e:
            raise TransportError(
                f"Status response for job {job_id} is not valid JSON: {e}",
                original_error=e,
                status_code=200,
            )

        try:
            snapshot = JobStatusSnapshot.from_backend(data, job_id=job_id)
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(
                f"Status response for job {job_id} is not a job snapshot: {e}",
                original_error=e,
                status_code=200,
            )

        logger.debug(f"Fetched job {job_id}: {snapshot.status.value} {snapshot.progress}%")
        return snapshot
