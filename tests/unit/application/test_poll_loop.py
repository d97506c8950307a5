"""
Unit tests for PollLoop.

Tests verify tick timing, overlap skipping, stopping and error isolation.
"""

import asyncio

import pytest

from jobwatch.application.poll_loop import PollLoop

from tests.fixtures import wait_until


class TestPollLoop:

    def test_non_positive_interval_is_rejected(self):
        async def noop():
            pass

        with pytest.raises(ValueError, match="Interval must be positive"):
            PollLoop(0, noop)

    @pytest.mark.asyncio
    async def test_first_tick_happens_after_one_interval(self):
        calls = []

        async def tick():
            calls.append(1)

        loop = PollLoop.start(0.05, tick)
        await asyncio.sleep(0.01)

        assert calls == []

        await wait_until(lambda: len(calls) >= 2)
        loop.stop()

    @pytest.mark.asyncio
    async def test_stop_prevents_further_ticks(self):
        calls = []

        async def tick():
            calls.append(1)

        loop = PollLoop.start(0.01, tick)
        await wait_until(lambda: len(calls) >= 1)

        loop.stop()
        count = len(calls)
        await asyncio.sleep(0.05)

        assert len(calls) == count
        assert loop.running is False

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        async def tick():
            pass

        loop = PollLoop.start(0.01, tick)

        loop.stop()
        loop.stop()

        assert loop.running is False

    @pytest.mark.asyncio
    async def test_overlapping_ticks_are_skipped(self):
        """Test that a slow invocation is never stacked on top of itself."""
        release = asyncio.Event()
        active = []
        max_active = []

        async def slow_tick():
            active.append(1)
            max_active.append(len(active))
            await release.wait()
            active.pop()

        loop = PollLoop.start(0.01, slow_tick)
        await wait_until(lambda: loop.skipped_ticks >= 3)

        assert loop.tick_count == 1
        assert max(max_active) == 1

        release.set()
        await wait_until(lambda: loop.tick_count >= 2)
        loop.stop()

    @pytest.mark.asyncio
    async def test_stop_does_not_cancel_in_flight_invocation(self):
        release = asyncio.Event()
        finished = []

        async def tick():
            await release.wait()
            finished.append(1)

        loop = PollLoop.start(0.01, tick)
        await wait_until(lambda: loop.tick_count == 1)

        loop.stop()
        release.set()
        await wait_until(lambda: finished == [1])

    @pytest.mark.asyncio
    async def test_exception_in_tick_is_logged_and_loop_continues(self, caplog):
        calls = []

        async def failing_tick():
            calls.append(1)
            raise RuntimeError("fetch exploded")

        loop = PollLoop.start(0.01, failing_tick, name="poll[job-1]")
        await wait_until(lambda: len(calls) >= 2)
        loop.stop()

        assert "Unhandled error in poll[job-1] tick: fetch exploded" in caplog.text

    @pytest.mark.asyncio
    async def test_set_interval(self):
        async def tick():
            pass

        loop = PollLoop.start(0.01, tick)
        loop.set_interval(0.5)

        assert loop.interval == 0.5
        with pytest.raises(ValueError):
            loop.set_interval(-1)
        loop.stop()
