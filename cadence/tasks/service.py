"""TaskService — task mutations that advance due dates and re-plan reminders.

Mutations of one task run one at a time under a per-task ``asyncio.Lock``, so
a read-modify-write never overwrites a concurrent change. Every mutation that
establishes or changes a due date hands the updated task to
``NotificationPlanner.schedule()``, which plans from the stored row.
Planning always runs in the background: a planning failure is logged and
never fails or rolls back the mutation itself. Recurrence validation happens
before anything is written, so an invalid rule leaves the task untouched.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from cadence.clock import SystemClock, ensure_utc
from cadence.errors import TaskNotFoundError, TaskStateError
from cadence.recurrence.engine import schedule_next_due_date
from cadence.recurrence.models import parse_frequency
from cadence.tasks.models import NotificationPreferences, Task, make_task_id

if TYPE_CHECKING:
    from datetime import datetime

    from cadence.clock import Clock
    from cadence.notifications.planner import NotificationPlanner
    from cadence.recurrence.models import Frequency, RecurrenceRule
    from cadence.tasks.models import TaskHistory
    from cadence.tasks.store import TaskStore

    FrequencyInput = dict[str, Any] | Frequency | RecurrenceRule

logger = logging.getLogger(__name__)


class TaskService:
    """Create, edit, complete, skip and delete tasks.

    Args:
        store: TaskStore for persistence.
        planner: NotificationPlanner that re-derives reminders after a change.
        clock: Source of "now" for completions and timestamps.
    """

    def __init__(
        self,
        store: TaskStore,
        planner: NotificationPlanner,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._planner = planner
        self._clock = clock or SystemClock()
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, task_id: str) -> asyncio.Lock:
        lock = self._locks.get(task_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[task_id] = lock
        return lock

    @property
    def planner(self) -> NotificationPlanner:
        return self._planner

    # -- Queries ---------------------------------------------------------------

    async def get_task(self, task_id: str) -> Task:
        """Fetch a task or raise TaskNotFoundError."""
        task = await self._store.get_task(task_id)
        if task is None:
            msg = f"Task not found: {task_id}"
            raise TaskNotFoundError(msg)
        return task

    async def list_tasks(self, owner_id: str) -> list[Task]:
        return await self._store.list_tasks(owner_id)

    async def get_history(self, task_id: str) -> list[TaskHistory]:
        await self.get_task(task_id)
        return await self._store.get_history(task_id)

    # -- Mutations -------------------------------------------------------------

    async def create_task(
        self,
        owner_id: str,
        title: str,
        frequency: FrequencyInput,
        *,
        next_due_date: datetime | None = None,
        is_rolling: bool = False,
        notification: NotificationPreferences | None = None,
    ) -> Task:
        """Validate the rule, store a new active task and plan its reminders."""
        rule = parse_frequency(frequency)
        task = Task(
            id=make_task_id(),
            title=title,
            created_by=owner_id,
            rule=rule,
            next_due_date=ensure_utc(next_due_date) if next_due_date else None,
            is_rolling=is_rolling,
            is_active=True,
            notification=notification or NotificationPreferences(),
            created_at=self._clock.now(),
        )
        await self._store.add_task(task)
        self._planner.schedule(task)
        return task

    async def edit_task(
        self,
        task_id: str,
        title: str,
        frequency: FrequencyInput,
        *,
        next_due_date: datetime | None,
        is_rolling: bool,
        notification: NotificationPreferences,
    ) -> Task:
        """Replace a task's title, rule, due date and preferences wholesale."""
        rule = parse_frequency(frequency)
        async with self._lock_for(task_id):
            current = await self.get_task(task_id)
            task = replace(
                current,
                title=title,
                rule=rule,
                next_due_date=ensure_utc(next_due_date) if next_due_date else None,
                is_rolling=is_rolling,
                notification=notification,
                updated_at=self._clock.now(),
            )
            if not await self._store.update_task(task):
                msg = f"Task not found: {task_id}"
                raise TaskNotFoundError(msg)
            self._planner.schedule(task)
        return task

    async def complete_task(self, task_id: str, completed_at: datetime | None = None) -> Task:
        """Record a completion and advance the due date.

        The completion time (default: now) is the reference; rolling tasks
        float from it while fixed tasks step from their previous due date.
        A task with no further occurrence is deactivated.
        """
        async with self._lock_for(task_id):
            task = await self.get_task(task_id)
            completed = ensure_utc(completed_at) if completed_at else self._clock.now()
            next_due = schedule_next_due_date(task, completed)
            return await self._advance(task, next_due, completed)

    async def skip_task(self, task_id: str) -> Task:
        """Advance past the current occurrence without completing it.

        The current due date is the reference, never "now", so repeated
        skips step along the schedule regardless of when they happen.
        """
        async with self._lock_for(task_id):
            task = await self.get_task(task_id)
            if task.next_due_date is None:
                msg = f"Task {task_id} has no due date to skip"
                raise TaskStateError(msg)
            next_due = schedule_next_due_date(task, task.next_due_date)
            return await self._advance(task, next_due, None)

    async def update_due_date(self, task_id: str, due_date: datetime) -> Task:
        """Override a task's due date and re-plan its reminders."""
        due = ensure_utc(due_date)
        async with self._lock_for(task_id):
            task = await self.get_task(task_id)
            now = self._clock.now()
            if not await self._store.update_due_date(task_id, due, now):
                msg = f"Task not found: {task_id}"
                raise TaskNotFoundError(msg)
            updated = replace(task, next_due_date=due, updated_at=now)
            self._planner.schedule(updated)
        logger.info("Due date of task %s set to %s", task_id, due.isoformat())
        return updated

    async def delete_task(self, task_id: str) -> None:
        """Delete a task; history and notifications cascade with it."""
        async with self._lock_for(task_id):
            if not await self._store.delete_task(task_id):
                msg = f"Task not found: {task_id}"
                raise TaskNotFoundError(msg)

    # -- Internal --------------------------------------------------------------

    async def _advance(
        self, task: Task, next_due: datetime | None, completed_at: datetime | None
    ) -> Task:
        """Persist an advanced due date; the caller holds the task's lock."""
        now = self._clock.now()
        if not await self._store.complete_task(task, next_due, completed_at, now):
            msg = f"Task not found: {task.id}"
            raise TaskNotFoundError(msg)
        updated = replace(
            task,
            next_due_date=next_due,
            is_active=task.is_active and next_due is not None,
            updated_at=now,
        )
        self._planner.schedule(updated)
        return updated
