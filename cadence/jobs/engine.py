"""JobEngine — APScheduler lifecycle for the periodic notification jobs.

Three interval jobs run against the notification store:

- ``deliver_due``: send pending notifications whose time has come;
- ``overdue_scan``: queue overdue reminders for past-due tasks;
- ``cleanup_sent``: delete sent notifications past the retention window.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from cadence.clock import SystemClock
from cadence.config import settings
from cadence.notifications.delivery import cleanup_sent_notifications, deliver_due_notifications
from cadence.notifications.overdue import check_overdue_tasks

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from cadence.clock import Clock
    from cadence.notifications.router import NotificationRouter
    from cadence.notifications.store import NotificationStore

logger = logging.getLogger(__name__)

DELIVER_DUE = "deliver_due"
OVERDUE_SCAN = "overdue_scan"
CLEANUP_SENT = "cleanup_sent"


class JobEngine:
    """Runs the delivery sweep, overdue scan and housekeeping on intervals.

    Args:
        store: NotificationStore the jobs operate on.
        router: NotificationRouter used by the delivery sweep.
        clock: Source of "now" (defaults to the system clock).
    """

    def __init__(
        self,
        store: NotificationStore,
        router: NotificationRouter,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._router = router
        self._clock = clock or SystemClock()
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._running = False
        self._jobs: dict[str, tuple[Callable[[], Awaitable[int]], int]] = {
            DELIVER_DUE: (self._deliver_due, settings.due_frequency_seconds),
            OVERDUE_SCAN: (self._overdue_scan, settings.overdue_frequency_seconds),
            CLEANUP_SENT: (self._cleanup_sent, settings.notification_cleanup_seconds),
        }

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the interval jobs and start the scheduler."""
        for job_id, (func, seconds) in self._jobs.items():
            self._scheduler.add_job(
                self._run_job,
                trigger=IntervalTrigger(seconds=seconds, timezone="UTC"),
                id=job_id,
                name=job_id,
                args=[job_id],
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        self._scheduler.start()
        self._running = True
        logger.info("Job engine started with %d job(s)", len(self._jobs))

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Job engine stopped")

    async def run_now(self, job_id: str) -> int:
        """Run a job immediately, outside its schedule. Returns its result count."""
        if job_id not in self._jobs:
            msg = f"Unknown job: {job_id}"
            raise KeyError(msg)
        func, _ = self._jobs[job_id]
        return await func()

    # -- Internal --------------------------------------------------------------

    async def _run_job(self, job_id: str) -> None:
        """Callback invoked by APScheduler. Failures are logged, not raised."""
        try:
            await self.run_now(job_id)
        except Exception:
            logger.exception("Job failed: %s", job_id)

    async def _deliver_due(self) -> int:
        return await deliver_due_notifications(self._store, self._router, self._clock)

    async def _overdue_scan(self) -> int:
        return await check_overdue_tasks(self._store, self._clock)

    async def _cleanup_sent(self) -> int:
        retention = timedelta(hours=settings.notification_retention_hours)
        return await cleanup_sent_notifications(self._store, self._clock, retention)
