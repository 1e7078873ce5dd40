"""Task, TaskHistory and NotificationPreferences data models."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from cadence.clock import from_iso, to_iso
from cadence.recurrence.models import Frequency

if TYPE_CHECKING:
    from cadence.recurrence.models import RecurrenceRule

# Column order of the ``tasks`` table, shared by SELECT and INSERT statements.
TASK_COLUMNS = (
    "id",
    "title",
    "created_by",
    "frequency_type",
    "frequency_on",
    "frequency_every",
    "frequency_unit",
    "frequency_days",
    "frequency_months",
    "next_due_date",
    "is_rolling",
    "is_active",
    "notification_enabled",
    "notification_due_date",
    "notification_pre_due",
    "notification_overdue",
    "created_at",
    "updated_at",
)


@dataclass(frozen=True)
class NotificationPreferences:
    """Per-task reminder switches.

    Attributes:
        enabled: Master switch; nothing is planned when false.
        due_date: Remind exactly at the due time.
        pre_due: Remind three hours before the due time.
        overdue: Let the overdue scan remind once the due time has passed.
    """

    enabled: bool = False
    due_date: bool = False
    pre_due: bool = False
    overdue: bool = False


@dataclass
class Task:
    """A recurring obligation owned by ``created_by``.

    Attributes:
        id: Unique identifier (UUID hex).
        title: Human-readable title, used in reminder text.
        created_by: Owner's user id.
        rule: Recurrence rule.
        created_at: Creation time (UTC), taken from the caller's clock.
        next_due_date: Aware UTC due date, or None for an unscheduled task.
        is_rolling: Next due date floats from the completion time when true.
        is_active: False once a one-off task has been completed.
        notification: Reminder preferences.
        updated_at: Last modification time (UTC), None if never modified.
    """

    id: str
    title: str
    created_by: str
    rule: RecurrenceRule
    created_at: datetime
    next_due_date: datetime | None = None
    is_rolling: bool = False
    is_active: bool = True
    notification: NotificationPreferences = field(default_factory=NotificationPreferences)
    updated_at: datetime | None = None

    @property
    def frequency(self) -> Frequency:
        """The rule in its flat wire/persisted shape."""
        return Frequency.from_rule(self.rule)

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching :data:`TASK_COLUMNS`."""
        freq = self.frequency
        prefs = self.notification
        return (
            self.id,
            self.title,
            self.created_by,
            str(freq.type),
            str(freq.on) if freq.on else None,
            freq.every,
            str(freq.unit) if freq.unit else None,
            json.dumps(freq.days) if freq.days is not None else None,
            json.dumps(freq.months) if freq.months is not None else None,
            to_iso(self.next_due_date),
            int(self.is_rolling),
            int(self.is_active),
            int(prefs.enabled),
            int(prefs.due_date),
            int(prefs.pre_due),
            int(prefs.overdue),
            to_iso(self.created_at),
            to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        """Deserialize from a row selected in :data:`TASK_COLUMNS` order."""
        frequency = Frequency(
            type=row[3],
            on=row[4],
            every=row[5],
            unit=row[6],
            days=json.loads(row[7]) if row[7] else None,
            months=json.loads(row[8]) if row[8] else None,
        )
        return cls(
            id=row[0],
            title=row[1],
            created_by=row[2],
            rule=frequency.to_rule(),
            next_due_date=from_iso(row[9]),
            is_rolling=bool(row[10]),
            is_active=bool(row[11]),
            notification=NotificationPreferences(
                enabled=bool(row[12]),
                due_date=bool(row[13]),
                pre_due=bool(row[14]),
                overdue=bool(row[15]),
            ),
            created_at=from_iso(row[16]),
            updated_at=from_iso(row[17]),
        )


@dataclass(frozen=True)
class TaskHistory:
    """One completion or skip of a task.

    ``completed_date`` is None for a skip.
    """

    id: int
    task_id: str
    due_date: datetime | None
    completed_date: datetime | None

    @classmethod
    def from_row(cls, row: tuple) -> TaskHistory:
        return cls(
            id=row[0],
            task_id=row[1],
            due_date=from_iso(row[2]),
            completed_date=from_iso(row[3]),
        )


def make_task_id() -> str:
    """Generate a new task ID."""
    return uuid.uuid4().hex
