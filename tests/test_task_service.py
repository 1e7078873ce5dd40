"""Tests for TaskService — mutations, due-date advancement and re-planning."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from cadence.errors import InvalidRuleError, StoreError, TaskNotFoundError, TaskStateError
from cadence.notifications.models import NotificationKind
from cadence.notifications.planner import PRE_DUE_OFFSET, NotificationPlanner
from cadence.notifications.store import NotificationStore
from cadence.recurrence.models import IntervalRule, SimpleRule
from cadence.tasks.models import NotificationPreferences
from cadence.tasks.service import TaskService
from cadence.tasks.store import TaskStore

DUE = datetime(2025, 6, 10, 9, 0, tzinfo=UTC)
REMINDERS = NotificationPreferences(enabled=True, due_date=True, pre_due=True, overdue=True)


@pytest.fixture
def planner(
    notification_store: NotificationStore, task_store: TaskStore, clock
) -> NotificationPlanner:
    return NotificationPlanner(notification_store, clock=clock, timeout=5, tasks=task_store)


@pytest.fixture
async def service(task_store: TaskStore, planner: NotificationPlanner, clock):
    yield TaskService(task_store, planner, clock=clock)
    await planner.drain()


async def _pending(store: NotificationStore, task_id: str) -> set[tuple[NotificationKind, datetime]]:
    return {
        (n.kind, n.scheduled_for)
        for n in await store.list_for_task(task_id, pending_only=True)
    }


# -- create_task ---------------------------------------------------------------


async def test_create_task_persists_and_plans(
    service: TaskService, task_store: TaskStore, notification_store: NotificationStore, clock
) -> None:
    task = await service.create_task(
        "user1",
        "Water plants",
        {"type": "weekly"},
        next_due_date=DUE,
        notification=REMINDERS,
    )
    await service.planner.drain()

    assert task.rule == SimpleRule("weekly")
    assert task.is_active is True
    assert task.created_at == clock.now()
    assert await task_store.get_task(task.id) == task
    assert await _pending(notification_store, task.id) == {
        (NotificationKind.DUE_DATE, DUE),
        (NotificationKind.PRE_DUE, DUE - PRE_DUE_OFFSET),
    }


async def test_create_task_without_due_date_plans_nothing(
    service: TaskService, notification_store: NotificationStore
) -> None:
    task = await service.create_task("user1", "Someday", {"type": "once"}, notification=REMINDERS)
    await service.planner.drain()

    assert task.next_due_date is None
    assert await _pending(notification_store, task.id) == set()


async def test_create_task_with_invalid_rule_stores_nothing(
    service: TaskService, task_store: TaskStore
) -> None:
    with pytest.raises(InvalidRuleError):
        await service.create_task(
            "user1", "Broken", {"type": "custom", "on": "interval", "unit": "days"}
        )
    assert await task_store.list_tasks() == []


async def test_create_task_normalizes_due_date(service: TaskService) -> None:
    task = await service.create_task(
        "user1", "Naive", {"type": "daily"}, next_due_date=datetime(2025, 6, 10, 9, 0)
    )
    assert task.next_due_date == DUE


# -- edit_task -----------------------------------------------------------------


async def test_edit_task_replans(
    service: TaskService, notification_store: NotificationStore
) -> None:
    task = await service.create_task(
        "user1", "Water plants", {"type": "weekly"}, next_due_date=DUE, notification=REMINDERS
    )
    new_due = DUE + timedelta(days=2)

    edited = await service.edit_task(
        task.id,
        "Water the garden",
        {"type": "custom", "on": "interval", "every": 3, "unit": "days"},
        next_due_date=new_due,
        is_rolling=True,
        notification=NotificationPreferences(enabled=True, due_date=True),
    )
    await service.planner.drain()

    assert edited.title == "Water the garden"
    assert edited.rule == IntervalRule(every=3, unit="days")
    assert edited.is_rolling is True
    assert edited.updated_at is not None
    assert await _pending(notification_store, task.id) == {(NotificationKind.DUE_DATE, new_due)}


async def test_edit_with_invalid_rule_leaves_task_untouched(
    service: TaskService, task_store: TaskStore
) -> None:
    task = await service.create_task("user1", "Water plants", {"type": "weekly"}, next_due_date=DUE)
    with pytest.raises(InvalidRuleError):
        await service.edit_task(
            task.id,
            "Changed",
            {"type": "custom", "on": "days_of_the_week", "days": [9]},
            next_due_date=DUE,
            is_rolling=False,
            notification=NotificationPreferences(),
        )
    assert await task_store.get_task(task.id) == task


async def test_edit_missing_task(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError):
        await service.edit_task(
            "ghost",
            "Title",
            {"type": "daily"},
            next_due_date=None,
            is_rolling=False,
            notification=NotificationPreferences(),
        )


# -- complete_task -------------------------------------------------------------


async def test_complete_fixed_task_steps_from_due_date(
    service: TaskService, task_store: TaskStore
) -> None:
    task = await service.create_task("user1", "Laundry", {"type": "weekly"}, next_due_date=DUE)
    completed = DUE + timedelta(days=15)

    updated = await service.complete_task(task.id, completed)

    assert updated.next_due_date == DUE + timedelta(days=7)
    history = await task_store.get_history(task.id)
    assert [(h.due_date, h.completed_date) for h in history] == [(DUE, completed)]


async def test_complete_rolling_task_steps_from_completion(service: TaskService) -> None:
    task = await service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE, is_rolling=True
    )
    completed = DUE + timedelta(days=15)

    updated = await service.complete_task(task.id, completed)

    assert updated.next_due_date == completed + timedelta(days=7)


async def test_complete_defaults_to_now(service: TaskService, task_store: TaskStore, clock) -> None:
    task = await service.create_task(
        "user1", "Laundry", {"type": "daily"}, next_due_date=DUE, is_rolling=True
    )
    updated = await service.complete_task(task.id)

    assert updated.next_due_date == clock.now() + timedelta(days=1)
    history = await task_store.get_history(task.id)
    assert history[0].completed_date == clock.now()


async def test_complete_once_deactivates(
    service: TaskService, task_store: TaskStore, notification_store: NotificationStore
) -> None:
    task = await service.create_task(
        "user1", "Renew passport", {"type": "once"}, next_due_date=DUE, notification=REMINDERS
    )
    await service.planner.drain()

    updated = await service.complete_task(task.id)
    await service.planner.drain()

    assert updated.is_active is False
    assert updated.next_due_date is None
    stored = await task_store.get_task(task.id)
    assert stored is not None
    assert stored.is_active is False
    assert await _pending(notification_store, task.id) == set()


async def test_complete_replans_reminders(
    service: TaskService, notification_store: NotificationStore
) -> None:
    task = await service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE, notification=REMINDERS
    )
    await service.complete_task(task.id, DUE)
    await service.planner.drain()

    next_due = DUE + timedelta(days=7)
    assert await _pending(notification_store, task.id) == {
        (NotificationKind.DUE_DATE, next_due),
        (NotificationKind.PRE_DUE, next_due - PRE_DUE_OFFSET),
    }


async def test_complete_missing_task(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError):
        await service.complete_task("ghost")


# -- skip_task -----------------------------------------------------------------


async def test_skip_uses_due_date_not_now(service: TaskService, task_store: TaskStore, clock) -> None:
    task = await service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE, is_rolling=True
    )
    clock.advance(timedelta(days=40))

    updated = await service.skip_task(task.id)

    assert updated.next_due_date == DUE + timedelta(days=7)
    history = await task_store.get_history(task.id)
    assert [(h.due_date, h.completed_date) for h in history] == [(DUE, None)]


async def test_repeated_skips_step_along_schedule(service: TaskService) -> None:
    task = await service.create_task(
        "user1", "Laundry", {"type": "custom", "on": "interval", "every": 2, "unit": "days"},
        next_due_date=DUE,
    )
    await service.skip_task(task.id)
    updated = await service.skip_task(task.id)

    assert updated.next_due_date == DUE + timedelta(days=4)


async def test_skip_without_due_date_is_rejected(service: TaskService) -> None:
    task = await service.create_task("user1", "Someday", {"type": "daily"})
    with pytest.raises(TaskStateError):
        await service.skip_task(task.id)


# -- update_due_date -----------------------------------------------------------


async def test_update_due_date_replans(
    service: TaskService, task_store: TaskStore, notification_store: NotificationStore
) -> None:
    task = await service.create_task(
        "user1",
        "Laundry",
        {"type": "weekly"},
        next_due_date=DUE,
        notification=NotificationPreferences(enabled=True, due_date=True),
    )
    new_due = DUE + timedelta(days=3)

    updated = await service.update_due_date(task.id, new_due)
    await service.planner.drain()

    assert updated.next_due_date == new_due
    stored = await task_store.get_task(task.id)
    assert stored is not None
    assert stored.next_due_date == new_due
    assert await _pending(notification_store, task.id) == {(NotificationKind.DUE_DATE, new_due)}


async def test_update_due_date_missing_task(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError):
        await service.update_due_date("ghost", DUE)


# -- delete / queries ----------------------------------------------------------


async def test_delete_task_cascades(
    service: TaskService, task_store: TaskStore, notification_store: NotificationStore
) -> None:
    task = await service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE, notification=REMINDERS
    )
    await service.complete_task(task.id, DUE)
    await service.planner.drain()

    await service.delete_task(task.id)

    assert await task_store.get_task(task.id) is None
    assert await task_store.get_history(task.id) == []
    assert await notification_store.list_for_task(task.id) == []


async def test_delete_missing_task(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError):
        await service.delete_task("ghost")


async def test_get_task_missing(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError, match="ghost"):
        await service.get_task("ghost")


async def test_list_tasks_by_owner(service: TaskService) -> None:
    await service.create_task("alice", "One", {"type": "daily"})
    await service.create_task("bob", "Two", {"type": "daily"})

    titles = [t.title for t in await service.list_tasks("alice")]
    assert titles == ["One"]


async def test_get_history_missing_task(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError):
        await service.get_history("ghost")


# -- Planning failures ---------------------------------------------------------


async def test_planning_failure_does_not_fail_mutation(task_store: TaskStore, clock) -> None:
    store = AsyncMock()
    store.replace_pending.side_effect = StoreError("locked")
    planner = NotificationPlanner(store, clock=clock)
    service = TaskService(task_store, planner, clock=clock)

    task = await service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE, notification=REMINDERS
    )
    updated = await service.complete_task(task.id, DUE)
    await planner.drain()

    assert updated.next_due_date == DUE + timedelta(days=7)
    stored = await task_store.get_task(task.id)
    assert stored is not None
    assert stored.next_due_date == DUE + timedelta(days=7)
    assert planner.failed_runs == 2


# -- Concurrent mutations ------------------------------------------------------


class SlowCompleteStore(TaskStore):
    """TaskStore whose completions take long enough to overlap other calls."""

    async def complete_task(self, *args, **kwargs) -> bool:
        await asyncio.sleep(0.05)
        return await super().complete_task(*args, **kwargs)


@pytest.fixture
async def slow_service(db_path, notification_store: NotificationStore, clock):
    store = SlowCompleteStore(db_path=db_path)
    planner = NotificationPlanner(notification_store, clock=clock, timeout=5, tasks=store)
    yield TaskService(store, planner, clock=clock)
    await planner.drain()


async def test_edit_overlapping_completion_leaves_no_stale_reminders(
    slow_service: TaskService, notification_store: NotificationStore
) -> None:
    task = await slow_service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE, notification=REMINDERS
    )
    await slow_service.planner.drain()

    await asyncio.gather(
        slow_service.complete_task(task.id, DUE),
        slow_service.edit_task(
            task.id,
            "Laundry",
            {"type": "weekly"},
            next_due_date=DUE + timedelta(days=7),
            is_rolling=False,
            notification=NotificationPreferences(),
        ),
    )
    await slow_service.planner.drain()

    stored = await slow_service.get_task(task.id)
    assert stored.notification.enabled is False
    assert await _pending(notification_store, task.id) == set()


async def test_overlapping_completions_both_advance(slow_service: TaskService) -> None:
    task = await slow_service.create_task(
        "user1", "Laundry", {"type": "weekly"}, next_due_date=DUE
    )

    await asyncio.gather(
        slow_service.complete_task(task.id, DUE),
        slow_service.complete_task(task.id, DUE),
    )

    stored = await slow_service.get_task(task.id)
    assert stored.next_due_date == DUE + timedelta(days=14)
    history = await slow_service.get_history(task.id)
    assert [h.due_date for h in history] == [DUE, DUE + timedelta(days=7)]
