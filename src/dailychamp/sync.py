"""
Periodic reconciliation of the local journal with its remote copy.

Most-recent-wins, no merging, no lock against the remote:

- remote missing        -> upload local (or an empty document)
- identical             -> nothing to do
- local file missing    -> download
- otherwise             -> newer mtime wins, ties go to local

A cycle is skipped for a short grace period after a local write, so a
desktop sync client writing the same path can finish uploading first.
This narrows the race window; it does not close it.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .adapters.file_store import LocalStorageError
from .adapters.webdav import (
    DEFAULT_FILE_PATH,
    AuthenticationError,
    RateLimitError,
    SyncError,
    WebDAVAdapter,
)
from .ports import LocalStore, RemoteStore

logger = logging.getLogger(__name__)

BASE_INTERVAL = 5  # seconds
MAX_INTERVAL = 60
GRACE_PERIOD = 10
FAILURE_THRESHOLD = 2
JOB_ID = "dailychamp-sync"

AUTH_FAILED_MESSAGE = (
    "Authentication failed: Check your Nextcloud credentials and run 'dailychamp login'."
)
RATE_LIMITED_MESSAGE = (
    "Sync rate limit exceeded. Check your Nextcloud credentials and run 'dailychamp login'."
)
REPEATED_FAILURE_MESSAGE = (
    "Sync failed repeatedly. Check your Nextcloud credentials and run 'dailychamp login'."
)


class SyncState(Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    CIRCUIT_OPEN = "circuit_open"  # Halted until reconfigured


class SyncResult(Enum):
    """Outcome of one sync cycle."""

    NOT_CONFIGURED = "not_configured"
    BUSY = "busy"  # Another cycle in flight; trigger dropped
    DEFERRED = "deferred"  # Inside the post-write grace period
    CREATED_REMOTE = "created_remote"
    UNCHANGED = "unchanged"
    DOWNLOADED = "downloaded"
    UPLOADED = "uploaded"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """
    Keeps one local document and one remote document in step.

    Lifecycle: configure() -> start() -> stop(). sync_once() can be called
    at any time; if a cycle is already running the call is dropped, never
    queued.

    Two consecutive failures open the circuit: one message goes to the
    failure listeners and the timer stops for good. Calling configure()
    (or attach()) again is the only way back.
    """

    def __init__(
        self,
        local: LocalStore,
        *,
        clock: Callable[[], datetime] = utcnow,
        scheduler=None,
        remote_factory: Callable[..., RemoteStore] = WebDAVAdapter,
        base_interval: int = BASE_INTERVAL,
        grace_period: int = GRACE_PERIOD,
        breaker_threshold: int = FAILURE_THRESHOLD,
        backoff_threshold: int = FAILURE_THRESHOLD,
    ):
        self._local = local
        self._clock = clock
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or BackgroundScheduler()
        self._remote_factory = remote_factory
        self.base_interval = base_interval
        self.grace_period = timedelta(seconds=grace_period)
        self.breaker_threshold = breaker_threshold
        self.backoff_threshold = backoff_threshold

        self._remote: RemoteStore | None = None
        self._job = None
        self._in_flight = threading.Lock()
        self._state = SyncState.IDLE
        self._interval = base_interval
        self._consecutive_errors = 0
        self._consecutive_auth_errors = 0
        self._last_local_write: datetime | None = None
        self._failure_listeners: list[Callable[[str], None]] = []
        self._change_listeners: list[Callable[[], None]] = []

        self.last_sync_time: datetime | None = None
        self.last_error: str | None = None

    # ============== Lifecycle ==============

    def configure(
        self,
        server_url: str,
        username: str,
        password: str,
        remote_path: str = DEFAULT_FILE_PATH,
    ) -> RemoteStore:
        """Point the engine at a remote document. Clears any open circuit."""
        remote = self._remote_factory(
            server_url=server_url,
            username=username,
            password=password,
            file_path=remote_path,
        )
        self.attach(remote)
        return remote

    def attach(self, remote: RemoteStore) -> None:
        """Use an already-built remote store. Resets failure tracking."""
        self._remote = remote
        self._state = SyncState.IDLE
        self.last_error = None
        self._reset_failures()

    def start(self, interval: int | None = None, run_now: bool = True) -> None:
        """Schedule recurring cycles every interval seconds."""
        if self._remote is None:
            raise RuntimeError("Sync is not configured. Call configure() first.")
        if interval is not None:
            self.base_interval = interval
        self._interval = self.base_interval

        if self._job is not None:
            self._remove_job()

        job_kwargs = {}
        if run_now:
            job_kwargs["next_run_time"] = self._clock()
        self._job = self._scheduler.add_job(
            self.sync_once,
            IntervalTrigger(seconds=self._interval),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_kwargs,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"Sync scheduled every {self._interval}s")

    def stop(self) -> None:
        """Stop scheduling and forget the remote. A request already sent still lands."""
        self._remove_job()
        self._remote = None
        self._reset_failures()

    def shutdown(self) -> None:
        """Stop, and shut down the scheduler if this engine created it."""
        self.stop()
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    @property
    def is_configured(self) -> bool:
        return self._remote is not None

    @property
    def is_running(self) -> bool:
        return self._job is not None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def interval(self) -> int:
        return self._interval

    # ============== Listeners ==============

    def add_failure_listener(self, callback: Callable[[str], None]) -> None:
        """Called once with a user-facing message when the circuit opens."""
        self._failure_listeners.append(callback)

    def add_change_listener(self, callback: Callable[[], None]) -> None:
        """Called after a download has replaced the local document."""
        self._change_listeners.append(callback)

    def note_local_write(self, when: datetime | None = None) -> None:
        """Record a local write; cycles are deferred for the grace period after it."""
        self._last_local_write = when or self._clock()

    # ============== Cycle ==============

    def sync_once(self) -> SyncResult:
        """Run one reconciliation cycle."""
        remote = self._remote
        if remote is None:
            return SyncResult.NOT_CONFIGURED

        if not self._in_flight.acquire(blocking=False):
            logger.debug("Sync already in progress, dropping trigger")
            return SyncResult.BUSY

        try:
            if self._within_grace_period():
                return SyncResult.DEFERRED

            self._state = SyncState.SYNCING
            try:
                result = self._reconcile(remote)
            except (SyncError, LocalStorageError) as e:
                self._record_failure(e)
                return SyncResult.FAILED

            self._record_success()
            logger.info(f"Sync completed ({result.value}) at {self.last_sync_time}")
            return result
        finally:
            if self._state is SyncState.SYNCING:
                self._state = SyncState.IDLE
            self._in_flight.release()

    def _within_grace_period(self) -> bool:
        if self._last_local_write is None:
            return False
        elapsed = self._clock() - self._last_local_write
        if elapsed < self.grace_period:
            logger.debug(
                f"Sync skipped: {elapsed.total_seconds():.0f}s since last write "
                f"(grace period: {self.grace_period.total_seconds():.0f}s)"
            )
            return True
        return False

    def _reconcile(self, remote: RemoteStore) -> SyncResult:
        local_content = self._local.read()
        remote_content = remote.download()

        if remote_content is None:
            remote.upload(local_content or "")
            logger.info("Created journal on remote server")
            return SyncResult.CREATED_REMOTE

        if local_content == remote_content:
            return SyncResult.UNCHANGED

        if not self._local.exists():
            self._apply_remote(remote_content)
            return SyncResult.DOWNLOADED

        remote_modified = remote.get_last_modified()
        local_modified = self._local.last_modified()
        if remote_modified is not None and (
            local_modified is None or remote_modified > local_modified
        ):
            self._apply_remote(remote_content)
            return SyncResult.DOWNLOADED

        if local_content is None:
            # Deleted between read() and exists(); leave the remote alone
            return SyncResult.UNCHANGED
        remote.upload(local_content)
        return SyncResult.UPLOADED

    def _apply_remote(self, content: str) -> None:
        self._local.write(content)
        for callback in self._change_listeners:
            callback()

    # ============== Failure handling ==============

    def _record_success(self) -> None:
        self.last_sync_time = self._clock()
        self.last_error = None
        self._consecutive_errors = 0
        self._consecutive_auth_errors = 0
        if self._interval > self.base_interval:
            self._interval = self.base_interval
            self._reschedule()

    def _record_failure(self, error: Exception) -> None:
        message = str(error)
        self.last_error = message
        self._consecutive_errors += 1
        logger.warning(f"Sync error ({self._consecutive_errors} in a row): {message}")

        if isinstance(error, AuthenticationError):
            self._consecutive_auth_errors += 1
            if self._consecutive_auth_errors >= self.breaker_threshold:
                self._open_circuit(AUTH_FAILED_MESSAGE)
                return

        if self._consecutive_errors >= self.breaker_threshold:
            if isinstance(error, RateLimitError):
                self._open_circuit(RATE_LIMITED_MESSAGE)
            else:
                self._open_circuit(REPEATED_FAILURE_MESSAGE)
            return

        # Only reachable when backoff_threshold < breaker_threshold
        if self._consecutive_errors >= self.backoff_threshold:
            self._widen_interval()

    def _open_circuit(self, message: str) -> None:
        logger.warning(f"Sync halted after repeated failures: {message}")
        self.stop()
        self._state = SyncState.CIRCUIT_OPEN
        for callback in self._failure_listeners:
            callback(message)

    def _widen_interval(self) -> None:
        widened = min(max(self._interval * 2, self.base_interval), MAX_INTERVAL)
        if widened != self._interval:
            self._interval = widened
            self._reschedule()
            logger.info(f"Increasing sync interval to {self._interval}s due to errors")

    def _reset_failures(self) -> None:
        self._consecutive_errors = 0
        self._consecutive_auth_errors = 0
        self._interval = self.base_interval

    # ============== Scheduling ==============

    def _reschedule(self) -> None:
        if self._job is not None:
            self._job.reschedule(IntervalTrigger(seconds=self._interval))

    def _remove_job(self) -> None:
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            logger.debug("Sync job already removed")
        self._job = None
