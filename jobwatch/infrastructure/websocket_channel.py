"""
WebSocket Push Channel

Concrete aiohttp-based implementation of the PushChannel interface.
Consumes per-job WebSocket frames and turns them into snapshots.
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from jobwatch.config.settings import WatchConfig
from jobwatch.domain.errors import MalformedMessageError, TransportError
from jobwatch.domain.job_status import JobStatusSnapshot, PushChannel, PushChannelHandle
from jobwatch.domain.job_status.channels import FailureCallback, SnapshotCallback

from .http_status_repository import build_headers

logger = logging.getLogger(__name__)


class WebSocketChannelHandle(PushChannelHandle):
    """
    One WebSocket connection for one job.

    The connection lives in a background task. Whatever ends it first,
    close() or a failure, wins; the failure callback fires at most once
    and never after close().
    """

    def __init__(self, job_id: str, on_snapshot: SnapshotCallback, on_failure: FailureCallback):
        self.job_id = job_id
        self._on_snapshot = on_snapshot
        self._on_failure = on_failure
        self._closed = False
        self._task: Optional[asyncio.Task] = None
        self.frames_received = 0
        self.frames_dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the connection. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug(f"Push channel for job {self.job_id} closed")

    def fail(self, error: TransportError) -> None:
        """Report a channel failure once and leave the handle closed."""
        if self._closed:
            return
        self._closed = True
        logger.info(f"Push channel for job {self.job_id} failed: {error}")
        self._on_failure(error)

    def dispatch(self, raw: str) -> None:
        """
        Parse one inbound frame and hand it to the snapshot callback.

        Malformed frames are dropped and logged.
        """
        if self._closed:
            return
        self.frames_received += 1
        try:
            snapshot = self._parse(raw)
        except MalformedMessageError as e:
            self.frames_dropped += 1
            logger.warning(f"Dropped push frame for job {self.job_id}: {e}")
            return
        try:
            self._on_snapshot(snapshot)
        except Exception as e:
            logger.error(f"Snapshot callback for job {self.job_id} raised: {e}", exc_info=True)

    def _parse(self, raw: str) -> JobStatusSnapshot:
        try:
            payload = json.loads(raw)
            snapshot = JobStatusSnapshot.from_backend(payload, job_id=self.job_id)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedMessageError(f"Invalid snapshot frame: {e}", original_error=e)
        if snapshot.job_id != self.job_id:
            raise MalformedMessageError(
                f"Frame addressed to job {snapshot.job_id} on channel for job {self.job_id}"
            )
        return snapshot


class WebSocketPushChannel(PushChannel):
    """
    Opens ws://host/ws/jobs/{job_id} connections.

    Only consumes frames; nothing is sent beyond the handshake. Never
    reconnects on its own.
    """

    def __init__(self, session: aiohttp.ClientSession, config: Optional[WatchConfig] = None):
        """
        Initialize with an HTTP session.

        Args:
            session: aiohttp ClientSession used for the WebSocket handshake
            config: Endpoint and heartbeat settings
        """
        self.session = session
        self.config = config or WatchConfig()

    def open(
        self,
        job_id: str,
        on_snapshot: SnapshotCallback,
        on_failure: FailureCallback,
    ) -> WebSocketChannelHandle:
        """Open a push connection for a job in the background."""
        handle = WebSocketChannelHandle(job_id, on_snapshot, on_failure)
        handle._task = asyncio.get_running_loop().create_task(self._run(handle))
        return handle

    async def _run(self, handle: WebSocketChannelHandle) -> None:
        url = self.config.push_url(handle.job_id)
        try:
            async with self.session.ws_connect(
                url,
                headers=build_headers(self.config),
                heartbeat=self.config.ws_heartbeat,
            ) as ws:
                logger.debug(f"Push channel connected for job {handle.job_id}: {url}")
                async for message in ws:
                    if handle.closed:
                        return
                    if message.type == aiohttp.WSMsgType.TEXT:
                        handle.dispatch(message.data)
                    elif message.type == aiohttp.WSMsgType.BINARY:
                        handle.dispatch(message.data.decode("utf-8", errors="replace"))
                    elif message.type == aiohttp.WSMsgType.ERROR:
                        raise TransportError(
                            f"Protocol error on push channel for job {handle.job_id}: {ws.exception()}",
                            original_error=ws.exception(),
                        )
                close_code = ws.close_code
            raise TransportError(
                f"Push channel for job {handle.job_id} closed by server (code {close_code})"
            )
        except asyncio.CancelledError:
            raise
        except TransportError as e:
            handle.fail(e)
        except aiohttp.ClientError as e:
            handle.fail(TransportError(
                f"Could not connect push channel for job {handle.job_id}: {e}",
                original_error=e,
            ))
        except asyncio.TimeoutError as e:
            handle.fail(TransportError(
                f"Push channel for job {handle.job_id} timed out",
                original_error=e,
            ))
