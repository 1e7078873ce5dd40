"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from cadence.notifications.router import NotificationRouter
from cadence.notifications.store import NotificationStore
from cadence.tasks.store import TaskStore


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def task_store(db_path: Path) -> TaskStore:
    """Create a TaskStore backed by a temp database."""
    return TaskStore(db_path=db_path)


@pytest.fixture
def notification_store(db_path: Path) -> NotificationStore:
    """Create a NotificationStore sharing the TaskStore's temp database."""
    return NotificationStore(db_path=db_path)


@pytest.fixture
def router():
    """Fresh NotificationRouter singleton for each test."""
    NotificationRouter._reset()
    yield NotificationRouter.get()
    NotificationRouter._reset()
