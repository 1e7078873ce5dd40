"""NotificationPlanner — derives a task's pending reminders from its due date.

Every planning run replaces the task's unsent notifications wholesale, so
running it twice with no intervening change leaves the same set behind.
Runs for the same task id are serialized with a per-task ``asyncio.Lock``;
the delete and insert commit in a single transaction. When the planner has a
``TaskStore`` it re-reads the task inside the lock and plans from the stored
row, so a run holding an older copy of the task cannot leave reminders that
contradict the latest committed state.

Task mutations plan in the background via :meth:`NotificationPlanner.schedule`.
Failures there are logged and counted, never raised to the mutating caller.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import timedelta
from typing import TYPE_CHECKING

from cadence.clock import SystemClock
from cadence.config import settings
from cadence.errors import PlanningError, StoreError
from cadence.notifications.models import Notification, NotificationKind

if TYPE_CHECKING:
    from datetime import datetime

    from cadence.clock import Clock
    from cadence.notifications.store import NotificationStore
    from cadence.tasks.models import Task
    from cadence.tasks.store import TaskStore

logger = logging.getLogger(__name__)

PRE_DUE_OFFSET = timedelta(hours=3)

_ORDINAL_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    return f"{day}{_ORDINAL_SUFFIXES.get(day % 10, 'th')}"


def format_due_date(value: datetime) -> str:
    """Render a due date the way reminder texts show it, e.g. ``January 2nd``."""
    return f"{value.strftime('%B')} {_ordinal(value.day)}"


def build_notifications(task: Task, now: datetime) -> list[Notification]:
    """Return the reminders *task* should have, without touching storage."""
    prefs = task.notification
    if not prefs.enabled or task.next_due_date is None:
        return []

    due = task.next_due_date
    notifications = []
    if prefs.due_date:
        notifications.append(
            Notification(
                task_id=task.id,
                user_id=task.created_by,
                kind=NotificationKind.DUE_DATE,
                scheduled_for=due,
                text=f"📅 *{task.title}* is due",
                created_at=now,
            )
        )
    if prefs.pre_due:
        notifications.append(
            Notification(
                task_id=task.id,
                user_id=task.created_by,
                kind=NotificationKind.PRE_DUE,
                scheduled_for=due - PRE_DUE_OFFSET,
                text=f"📢 *{task.title}* is coming up on {format_due_date(due)}",
                created_at=now,
            )
        )
    return notifications


class NotificationPlanner:
    """Keeps each task's pending notifications consistent with its due date.

    Args:
        store: NotificationStore the reminders are written to.
        clock: Source of ``created_at`` timestamps.
        timeout: Default ambient timeout in seconds for background runs.
        tasks: TaskStore to re-read the task from before planning. Without
            one, the task passed in is planned as given.
    """

    def __init__(
        self,
        store: NotificationStore,
        clock: Clock | None = None,
        timeout: float | None = None,
        *,
        tasks: TaskStore | None = None,
    ) -> None:
        self._store = store
        self._tasks = tasks
        self._clock = clock or SystemClock()
        self._timeout = timeout if timeout is not None else settings.planning_timeout_seconds
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._background: set[asyncio.Task[None]] = set()
        self.failed_runs = 0

    def _lock_for(self, task_id: str) -> asyncio.Lock:
        lock = self._locks.get(task_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[task_id] = lock
        return lock

    async def plan_notifications(
        self, task: Task, *, timeout: float | None = None
    ) -> list[Notification]:
        """Replace the task's pending notifications. Returns the new set.

        A task that no longer exists in the TaskStore is skipped; its
        notifications went with it.

        Raises:
            PlanningError: The store failed or *timeout* expired; the
                previous pending set is left intact.
        """
        lock = self._lock_for(task.id)
        try:
            async with asyncio.timeout(timeout), lock:
                current = await self._current(task)
                if current is None:
                    logger.debug("Task %s was deleted; nothing to plan", task.id)
                    return []
                notifications = build_notifications(current, self._clock.now())
                planned = await self._store.replace_pending(task.id, notifications)
        except StoreError as exc:
            msg = f"Failed to plan notifications for task {task.id}"
            raise PlanningError(msg) from exc
        except TimeoutError as exc:
            msg = f"Planning notifications for task {task.id} timed out after {timeout}s"
            raise PlanningError(msg) from exc
        logger.info("Planned %d notification(s) for task %s", len(planned), task.id)
        return planned

    async def _current(self, task: Task) -> Task | None:
        if self._tasks is None:
            return task
        return await self._tasks.get_task(task.id)

    # -- Background planning ---------------------------------------------------

    def schedule(self, task: Task) -> asyncio.Task[None]:
        """Plan *task* in the background and return the handle.

        Fire-and-forget: the caller does not wait, and failures are logged
        rather than raised.
        """
        handle = asyncio.create_task(self._run(task), name=f"plan-notifications-{task.id}")
        self._background.add(handle)
        handle.add_done_callback(self._background.discard)
        return handle

    async def _run(self, task: Task) -> None:
        """Execute one background planning run with error logging."""
        try:
            await self.plan_notifications(task, timeout=self._timeout)
        except PlanningError:
            self.failed_runs += 1
            logger.exception("Background planning failed for task %s; reminders are stale", task.id)
        except Exception:
            self.failed_runs += 1
            logger.exception("Unexpected error planning notifications for task %s", task.id)

    @property
    def pending_runs(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for all in-flight background runs to finish."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
