"""
Unit tests for JobWatchService.

Tests verify wiring of trackers and aggregators, the returned unwatch
functions, and session ownership.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from jobwatch.application.job_tracker import TrackerState
from jobwatch.application.watch_service import JobWatchService
from jobwatch.infrastructure.http_status_repository import HttpJobStatusRepository
from jobwatch.infrastructure.websocket_channel import WebSocketPushChannel

from tests.fixtures import completed, pending, running, statuses, wait_until


@pytest_asyncio.fixture
async def service(fast_config, repository, push_channel):
    service = JobWatchService(config=fast_config, repository=repository, push_channel=push_channel)
    yield service
    await service.close()


class TestWatchJob:

    @pytest.mark.asyncio
    async def test_watch_job_emits_until_terminal(self, service, repository, push_channel, updates):
        repository.script("job-1", pending())

        service.watch_job("job-1", updates.append)
        await wait_until(lambda: push_channel.handles)
        push_channel.last.emit(running(40))
        push_channel.last.emit(completed())

        assert statuses(updates) == ["pending", "running(40)", "completed"]

    @pytest.mark.asyncio
    async def test_unwatch_function_stops_callbacks(self, service, repository, push_channel, updates):
        repository.script("job-1", pending())

        unwatch = service.watch_job("job-1", updates.append)
        await wait_until(lambda: push_channel.handles)
        unwatch()
        push_channel.last.emit_unchecked(running(40))

        assert updates == [pending()]
        assert push_channel.last.closed is True

    @pytest.mark.asyncio
    async def test_open_tracker_returns_running_tracker(self, service, repository, push_channel):
        repository.script("job-1", pending())

        tracker = service.open_tracker("job-1", lambda snapshot: None)
        await wait_until(lambda: push_channel.handles)

        assert tracker.state is TrackerState.PUSH_ACTIVE
        tracker.unwatch()

    @pytest.mark.asyncio
    async def test_errors_are_routed_to_error_callback(self, service, repository, errors):
        service.watch_job("missing", lambda snapshot: None, errors.append)

        await wait_until(lambda: errors)

        # The fake fetcher has no script for this job and raises a transport error,
        # so tracking falls back to polling and is eventually abandoned
        assert errors[0].job_id == "missing"
        assert errors[0].category.value == "tracking_abandoned"

    @pytest.mark.asyncio
    async def test_default_publisher_logs_events(self, service, repository, push_channel, caplog):
        caplog.set_level(logging.INFO, logger="jobwatch.events")
        repository.script("job-1", pending())

        service.watch_job("job-1", lambda snapshot: None)
        await wait_until(lambda: push_channel.handles)
        push_channel.last.fail()

        assert "Job job-1 channel push -> poll" in caplog.text
        await service.close()


class TestWatchJobs:

    @pytest.mark.asyncio
    async def test_watch_jobs_reports_tables(self, service, repository):
        tables = []
        repository.set_default("j1", running(10, job_id="j1"))
        repository.set_default("j2", completed(job_id="j2"))

        unwatch_all = service.watch_jobs(["j1", "j2"], tables.append)
        await wait_until(lambda: tables)
        unwatch_all()

        assert tables[0]["j1"] == running(10, job_id="j1")
        assert tables[0]["j2"] == completed(job_id="j2")

    @pytest.mark.asyncio
    async def test_unwatch_all_stops_polling(self, service, repository):
        tables = []
        repository.set_default("j1", running(10, job_id="j1"))

        unwatch_all = service.watch_jobs(["j1"], tables.append)
        await wait_until(lambda: tables)
        unwatch_all()
        calls = repository.call_count("j1")
        await asyncio.sleep(0.05)

        assert repository.call_count("j1") == calls


class TestServiceLifecycle:

    @pytest.mark.asyncio
    async def test_close_unwatches_everything(self, service, repository, push_channel, updates):
        repository.script("job-1", pending())
        repository.set_default("j1", running(10, job_id="j1"))
        tracker = service.open_tracker("job-1", updates.append)
        aggregator = service.open_aggregator(["j1"], lambda table: None)
        await wait_until(lambda: push_channel.handles)

        await service.close()

        assert tracker.closed is True
        assert aggregator.job_ids == set()
        assert push_channel.last.closed is True

    @pytest.mark.asyncio
    async def test_builds_aiohttp_adapters_and_owns_session(self, fast_config):
        async with JobWatchService(config=fast_config) as service:
            assert isinstance(service.repository, HttpJobStatusRepository)
            assert isinstance(service.push_channel, WebSocketPushChannel)
            session = service.repository.session
            assert service.push_channel.session is session

        assert session.closed is True

    @pytest.mark.asyncio
    async def test_borrowed_session_is_not_closed(self, fast_config):
        session = Mock(closed=False)
        session.close = AsyncMock()

        async with JobWatchService(config=fast_config, session=session) as service:
            assert service.repository.session is session

        session.close.assert_not_called()

    def test_config_defaults_to_environment(self, monkeypatch):
        monkeypatch.setenv("JOBWATCH_BASE_URL", "https://api.example.org")

        service = JobWatchService(repository=Mock(), push_channel=Mock())

        assert service.config.base_url == "https://api.example.org"
