"""Tests for the sync engine."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from apscheduler.jobstores.base import JobLookupError

from dailychamp.adapters.file_store import LocalStorageError
from dailychamp.adapters.webdav import (
    AuthenticationError,
    NetworkError,
    RateLimitError,
    SyncError,
)
from dailychamp.sync import (
    AUTH_FAILED_MESSAGE,
    JOB_ID,
    RATE_LIMITED_MESSAGE,
    REPEATED_FAILURE_MESSAGE,
    SyncEngine,
    SyncResult,
    SyncState,
)

T0 = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FakeLocal:
    def __init__(self, content=None, modified=None):
        self.content = content
        self.modified = modified
        self.writes = []

    def read(self):
        return self.content

    def write(self, content):
        self.content = content
        self.writes.append(content)

    def exists(self):
        return self.content is not None

    def last_modified(self):
        return self.modified if self.content is not None else None

    def delete(self):
        self.content = None


class FakeRemote:
    def __init__(self, content=None, modified=None):
        self.content = content
        self.modified = modified
        self.uploads = []
        self.error = None

    def download(self):
        if self.error:
            raise self.error
        return self.content

    def upload(self, content):
        self.uploads.append(content)
        self.content = content

    def exists(self):
        return self.content is not None

    def get_last_modified(self):
        return self.modified

    def list_directory(self, dir_path):
        return []

    def make_directory(self, dir_path):
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    sched = MagicMock()
    sched.running = False
    return sched


@pytest.fixture
def local():
    return FakeLocal()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def engine(local, remote, clock, scheduler):
    eng = SyncEngine(local, clock=clock, scheduler=scheduler)
    eng.attach(remote)
    return eng


class TestReconcile:
    def test_remote_missing_uploads_local(self, engine, local, remote):
        local.content = "X"
        assert engine.sync_once() is SyncResult.CREATED_REMOTE
        assert remote.uploads == ["X"]
        assert local.writes == []

    def test_both_missing_creates_empty_remote(self, engine, remote):
        assert engine.sync_once() is SyncResult.CREATED_REMOTE
        assert remote.uploads == [""]

    def test_identical_content(self, engine, local, remote):
        local.content = remote.content = "same"
        assert engine.sync_once() is SyncResult.UNCHANGED
        assert remote.uploads == []
        assert local.writes == []

    def test_local_missing_downloads(self, engine, local, remote):
        remote.content = "from server"
        changed = []
        engine.add_change_listener(lambda: changed.append(True))
        assert engine.sync_once() is SyncResult.DOWNLOADED
        assert local.content == "from server"
        assert changed == [True]

    def test_remote_newer_downloads(self, engine, local, remote, clock):
        local.content, local.modified = "old", T0 - timedelta(minutes=5)
        remote.content, remote.modified = "new", T0 - timedelta(minutes=1)
        assert engine.sync_once() is SyncResult.DOWNLOADED
        assert local.content == "new"
        assert remote.uploads == []

    def test_local_newer_uploads(self, engine, local, remote):
        local.content, local.modified = "mine", T0 - timedelta(minutes=1)
        remote.content, remote.modified = "theirs", T0 - timedelta(minutes=5)
        assert engine.sync_once() is SyncResult.UPLOADED
        assert remote.uploads == ["mine"]
        assert local.writes == []

    def test_tie_goes_to_local(self, engine, local, remote):
        local.content, local.modified = "mine", T0
        remote.content, remote.modified = "theirs", T0
        assert engine.sync_once() is SyncResult.UPLOADED

    def test_unknown_remote_time_uploads(self, engine, local, remote):
        local.content, local.modified = "mine", T0
        remote.content = "theirs"
        assert engine.sync_once() is SyncResult.UPLOADED

    def test_success_records_time(self, engine, local, remote, clock):
        local.content = remote.content = "same"
        engine.sync_once()
        assert engine.last_sync_time == T0
        assert engine.last_error is None


class TestGuards:
    def test_not_configured(self, local, clock, scheduler):
        engine = SyncEngine(local, clock=clock, scheduler=scheduler)
        assert engine.sync_once() is SyncResult.NOT_CONFIGURED
        with pytest.raises(RuntimeError):
            engine.start()

    def test_grace_period_defers(self, engine, local, remote, clock):
        local.content = "edited"
        engine.note_local_write()
        clock.advance(9)
        assert engine.sync_once() is SyncResult.DEFERRED
        assert remote.uploads == []

        clock.advance(1)
        assert engine.sync_once() is SyncResult.CREATED_REMOTE

    def test_overlapping_trigger_is_dropped(self, engine, remote):
        nested = []

        def download():
            nested.append(engine.sync_once())
            return None

        remote.download = download
        assert engine.sync_once() is SyncResult.CREATED_REMOTE
        assert nested == [SyncResult.BUSY]
        assert engine.state is SyncState.IDLE

    def test_guard_released_after_failure(self, engine, remote):
        remote.error = NetworkError("down")
        assert engine.sync_once() is SyncResult.FAILED
        remote.error = None
        assert engine.sync_once() is SyncResult.CREATED_REMOTE


class TestCircuitBreaker:
    def test_two_failures_open_circuit(self, engine, remote, scheduler):
        messages = []
        engine.add_failure_listener(messages.append)
        engine.start()
        job = scheduler.add_job.return_value

        remote.error = NetworkError("Network error: unreachable")
        assert engine.sync_once() is SyncResult.FAILED
        assert messages == []
        assert engine.last_error == "Network error: unreachable"

        assert engine.sync_once() is SyncResult.FAILED
        assert messages == [REPEATED_FAILURE_MESSAGE]
        assert engine.state is SyncState.CIRCUIT_OPEN
        assert engine.is_configured is False
        assert engine.is_running is False
        assert engine.last_error == "Network error: unreachable"
        job.remove.assert_called_once()

        # Nothing further happens until reconfigured
        assert engine.sync_once() is SyncResult.NOT_CONFIGURED
        assert messages == [REPEATED_FAILURE_MESSAGE]

    def test_auth_failures(self, engine, remote):
        messages = []
        engine.add_failure_listener(messages.append)
        remote.error = AuthenticationError("401")
        engine.sync_once()
        engine.sync_once()
        assert messages == [AUTH_FAILED_MESSAGE]

    def test_rate_limit(self, engine, remote):
        messages = []
        engine.add_failure_listener(messages.append)
        remote.error = RateLimitError("429")
        engine.sync_once()
        engine.sync_once()
        assert messages == [RATE_LIMITED_MESSAGE]

    def test_local_storage_error_counts(self, engine, local):
        messages = []
        engine.add_failure_listener(messages.append)
        local.read = MagicMock(side_effect=LocalStorageError("disk gone"))
        engine.sync_once()
        engine.sync_once()
        assert messages == [REPEATED_FAILURE_MESSAGE]

    def test_success_resets_count(self, engine, remote):
        messages = []
        engine.add_failure_listener(messages.append)
        remote.error = SyncError("500")
        engine.sync_once()
        remote.error = None
        engine.sync_once()
        remote.error = SyncError("500")
        engine.sync_once()
        assert messages == []
        assert engine.state is SyncState.IDLE

    def test_attach_closes_circuit(self, engine, remote):
        remote.error = SyncError("500")
        engine.sync_once()
        engine.sync_once()
        assert engine.state is SyncState.CIRCUIT_OPEN

        fresh = FakeRemote()
        engine.attach(fresh)
        assert engine.state is SyncState.IDLE
        assert engine.last_error is None
        assert engine.sync_once() is SyncResult.CREATED_REMOTE


class TestBackoff:
    def test_interval_widens_below_breaker(self, local, remote, clock, scheduler):
        engine = SyncEngine(local, clock=clock, scheduler=scheduler, breaker_threshold=3)
        engine.attach(remote)
        engine.start()
        job = scheduler.add_job.return_value

        remote.error = SyncError("500")
        engine.sync_once()
        assert engine.interval == 5
        engine.sync_once()
        assert engine.interval == 10
        trigger = job.reschedule.call_args.args[0]
        assert trigger.interval == timedelta(seconds=10)

        remote.error = None
        engine.sync_once()
        assert engine.interval == 5

    def test_interval_capped(self, local, remote, clock, scheduler):
        engine = SyncEngine(
            local, clock=clock, scheduler=scheduler, breaker_threshold=100, backoff_threshold=1
        )
        engine.attach(remote)
        engine.start()
        remote.error = SyncError("500")
        for _ in range(10):
            engine.sync_once()
        assert engine.interval == 60


class TestScheduling:
    def test_start_adds_job(self, engine, scheduler, clock):
        engine.start(interval=30)
        args, kwargs = scheduler.add_job.call_args
        assert args[0] == engine.sync_once
        assert args[1].interval == timedelta(seconds=30)
        assert kwargs["id"] == JOB_ID
        assert kwargs["max_instances"] == 1
        assert kwargs["next_run_time"] == T0
        scheduler.start.assert_called_once()
        assert engine.is_running
        assert engine.interval == 30

    def test_start_without_immediate_run(self, engine, scheduler):
        engine.start(run_now=False)
        assert "next_run_time" not in scheduler.add_job.call_args.kwargs

    def test_running_scheduler_not_restarted(self, engine, scheduler):
        scheduler.running = True
        engine.start()
        scheduler.start.assert_not_called()

    def test_stop(self, engine, scheduler):
        engine.start()
        job = scheduler.add_job.return_value
        job.remove.side_effect = JobLookupError(JOB_ID)
        engine.stop()
        assert engine.is_running is False
        assert engine.is_configured is False

    def test_shutdown_leaves_injected_scheduler(self, engine, scheduler):
        scheduler.running = True
        engine.shutdown()
        scheduler.shutdown.assert_not_called()

    def test_configure_uses_factory(self, local, clock, scheduler):
        factory = MagicMock(return_value=FakeRemote())
        engine = SyncEngine(local, clock=clock, scheduler=scheduler, remote_factory=factory)
        engine.configure("https://cloud.example.com", "alice", "pw", "/j/daily.md")
        factory.assert_called_once_with(
            server_url="https://cloud.example.com",
            username="alice",
            password="pw",
            file_path="/j/daily.md",
        )
        assert engine.is_configured
