"""NotificationScheduler — runs scanner ticks on an APScheduler interval job.

The job is registered with ``max_instances=1`` and ``coalesce=True`` so
ticks never overlap and a backlog of missed runs collapses into one.
``stop()`` sets the shared event, which asks an in-flight tick to stop
between records, then shuts the scheduler down once that tick returns.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.background import BackgroundScheduler

if TYPE_CHECKING:
    from elxctl.services.notify import NotificationScanner
    from elxctl.services.result import ServiceResult

log = structlog.get_logger(__name__)

JOB_ID = "elxctl-notification-scan"
_WAIT_SLICE = 0.2


class NotificationScheduler:
    """Drive :meth:`NotificationScanner.run_tick` every *interval* seconds."""

    def __init__(
        self,
        scanner: NotificationScanner,
        interval: float,
        *,
        stop_event: threading.Event | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._scanner = scanner
        self._interval = interval
        self._stop = stop_event or threading.Event()
        self._scheduler: BackgroundScheduler | None = None
        self._max_ticks: int | None = None
        self._ran = 0
        self.ticks = 0

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def tick(self) -> ServiceResult | None:
        """Run one tick. Unexpected errors are logged, never raised.

        Does nothing once the stop event is set.
        """
        if self._stop.is_set():
            return None
        self.ticks += 1
        self._ran += 1
        try:
            return self._scanner.run_tick()
        except Exception:
            log.exception("scheduler.tick_failed", tick=self.ticks)
            return None
        finally:
            if self._max_ticks is not None and self._ran >= self._max_ticks:
                self._stop.set()

    def run(self, *, max_ticks: int | None = None) -> int:
        """Tick until stopped or *max_ticks* reached, blocking the caller.

        The caller thread only waits on the stop event, so signal handlers
        installed there run promptly while the tick itself stays on the
        scheduler's worker thread. Returns the number of ticks run.
        """
        self._max_ticks = max_ticks
        self._ran = 0
        self._start_scheduler()
        try:
            # A signal delivered to a worker thread only runs its Python
            # handler once this thread wakes, so wait in short slices.
            while not self._stop.wait(_WAIT_SLICE):
                pass
        finally:
            self._shutdown()
        log.info("scheduler.stopped", ticks=self._ran)
        return self._ran

    def start(self) -> None:
        """Run in the background until :meth:`stop` is called."""
        if self.running:
            return
        self._stop.clear()
        self._max_ticks = None
        self._ran = 0
        self._start_scheduler()

    def stop(self) -> None:
        """Ask the current tick to wind down and wait for it to finish."""
        self._shutdown()

    def _start_scheduler(self) -> None:
        scheduler = BackgroundScheduler(timezone=UTC)
        scheduler.add_job(
            self.tick,
            "interval",
            seconds=self._interval,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            next_run_time=datetime.now(UTC),
        )
        scheduler.start()
        self._scheduler = scheduler
        log.info("scheduler.started", interval=self._interval)

    def _shutdown(self) -> None:
        self._stop.set()
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=True)
            self._scheduler = None
