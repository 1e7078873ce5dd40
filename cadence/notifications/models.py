"""Notification data model."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum

from cadence.clock import from_iso, to_iso

NOTIFICATION_COLUMNS = (
    "id",
    "task_id",
    "user_id",
    "type",
    "text",
    "is_sent",
    "scheduled_for",
    "created_at",
)


class NotificationKind(StrEnum):
    DUE_DATE = "due_date"
    PRE_DUE = "pre_due"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class Notification:
    """A reminder scheduled for delivery to a task's owner.

    Attributes:
        task_id: Task the reminder belongs to.
        user_id: Recipient (the task owner).
        kind: Explicit discriminator; never inferred from ``scheduled_for``.
        scheduled_for: Aware UTC time at which the reminder becomes due.
        text: Rendered message.
        created_at: Creation time (UTC), taken from the caller's clock.
        is_sent: Flipped by the delivery sweep only.
        id: Row id, None until persisted.
    """

    task_id: str
    user_id: str
    kind: NotificationKind
    scheduled_for: datetime
    text: str
    created_at: datetime
    is_sent: bool = False
    id: int | None = None

    def with_id(self, notification_id: int) -> Notification:
        return replace(self, id=notification_id)

    def to_row(self) -> tuple:
        """Serialize to an INSERT tuple (every column but ``id``)."""
        return (
            self.task_id,
            self.user_id,
            str(self.kind),
            self.text,
            int(self.is_sent),
            to_iso(self.scheduled_for),
            to_iso(self.created_at),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Notification:
        """Deserialize from a row selected in :data:`NOTIFICATION_COLUMNS` order."""
        return cls(
            id=row[0],
            task_id=row[1],
            user_id=row[2],
            kind=NotificationKind(row[3]),
            text=row[4],
            is_sent=bool(row[5]),
            scheduled_for=from_iso(row[6]),
            created_at=from_iso(row[7]),
        )
