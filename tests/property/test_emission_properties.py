"""
Property-based tests for snapshot emission.

Whatever order and mix of snapshots the channels deliver, the emitted
stream must never regress, never repeat itself and end at the first
terminal snapshot.
"""

import asyncio

from hypothesis import given
from hypothesis import strategies as st

from jobwatch.application.job_tracker import JobTracker
from jobwatch.config import WatchConfig
from jobwatch.domain.job_status import EmissionGuard, is_older

from tests.fixtures import FakeJobStatusRepository, FakePushChannel, assert_monotonic, pending, wait_until
from tests.property.strategies import channel_events, snapshot_streams, snapshots

# Long intervals keep the poll loop out of the way; only pushed events matter here
SLOW_POLL = WatchConfig(fallback_poll_interval=60.0, ws_heartbeat=None)


class TestEmissionGuardProperties:

    @given(snapshot_streams())
    def test_accepted_stream_is_monotonic(self, stream):
        guard = EmissionGuard("job-1")

        emitted = [snapshot for snapshot in stream if guard.offer(snapshot).accepted]

        assert_monotonic(emitted)

    @given(snapshot_streams())
    def test_accepted_stream_has_no_consecutive_duplicates(self, stream):
        guard = EmissionGuard("job-1")

        emitted = [snapshot for snapshot in stream if guard.offer(snapshot).accepted]

        assert all(a != b for a, b in zip(emitted, emitted[1:]))

    @given(snapshot_streams())
    def test_only_own_job_is_emitted(self, stream):
        guard = EmissionGuard("job-1")

        emitted = [snapshot for snapshot in stream if guard.offer(snapshot).accepted]

        assert all(snapshot.job_id == "job-1" for snapshot in emitted)

    @given(snapshot_streams())
    def test_each_accepted_snapshot_is_not_older_than_its_predecessor(self, stream):
        guard = EmissionGuard("job-1")

        emitted = [snapshot for snapshot in stream if guard.offer(snapshot).accepted]

        assert not any(is_older(b, a) for a, b in zip(emitted, emitted[1:]))


class TestOrderingProperties:

    @given(snapshots(), snapshots())
    def test_is_older_is_asymmetric(self, a, b):
        assert not (is_older(a, b) and is_older(b, a))

    @given(snapshots())
    def test_nothing_is_older_than_itself(self, a):
        assert is_older(a, a) is False


class TestTrackerProperties:

    @given(st.lists(channel_events(), min_size=1, max_size=15))
    def test_tracker_output_is_monotonic_for_any_channel_history(self, events):
        async def scenario():
            repository = FakeJobStatusRepository()
            repository.script("job-1", pending())
            push_channel = FakePushChannel()
            emitted = []
            tracker = JobTracker("job-1", repository, push_channel, emitted.append, config=SLOW_POLL)

            tracker.watch()
            await wait_until(lambda: push_channel.handles)
            handle = push_channel.handles[0]

            for kind, snapshot in events:
                if kind == "push":
                    handle.emit(snapshot)
                elif kind == "late":
                    handle.emit_unchecked(snapshot)
                else:
                    handle.fail()

            closed_after_terminal = tracker.closed or not any(s.is_terminal() for s in emitted)
            tracker.unwatch()
            return emitted, closed_after_terminal

        emitted, closed_after_terminal = asyncio.run(scenario())

        assert emitted[0] == pending()
        assert_monotonic(emitted)
        assert closed_after_terminal
