"""NotificationStore — aiosqlite persistence for planned reminders.

Each caller owns one subset of rows:

- the planner inserts and deletes *pending* rows for one task;
- the delivery sweep flips ``is_sent``;
- housekeeping deletes *sent* rows older than the retention window.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cadence.clock import to_iso
from cadence.db import SQLiteStore
from cadence.notifications.models import NOTIFICATION_COLUMNS, Notification, NotificationKind
from cadence.tasks.models import TASK_COLUMNS, Task

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    import aiosqlite

logger = logging.getLogger(__name__)

_SELECT_NOTIFICATION = f"SELECT {', '.join(NOTIFICATION_COLUMNS)} FROM notifications"
_INSERT_NOTIFICATION = (
    "INSERT INTO notifications "
    f"({', '.join(NOTIFICATION_COLUMNS[1:])}) "
    f"VALUES ({', '.join('?' for _ in NOTIFICATION_COLUMNS[1:])})"
)

_SELECT_OVERDUE_CANDIDATES = f"""
SELECT {', '.join(f't.{column}' for column in TASK_COLUMNS)}
FROM tasks t
WHERE t.is_active = 1
  AND t.next_due_date IS NOT NULL
  AND t.next_due_date <= ?
  AND t.notification_enabled = 1
  AND t.notification_overdue = 1
  AND NOT EXISTS (
      SELECT 1 FROM notifications n
      WHERE n.task_id = t.id AND n.type = ? AND n.is_sent = 0
  )
ORDER BY t.next_due_date
"""


class NotificationStore(SQLiteStore):
    """Persists notifications in SQLite.

    Singleton accessed via ``NotificationStore.get()``.  Pass an explicit
    *db_path* for test isolation.
    """

    _instance: NotificationStore | None = None

    @classmethod
    def get(cls) -> NotificationStore:
        """Return the shared NotificationStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    @staticmethod
    async def _insert(
        db: aiosqlite.Connection, notifications: Iterable[Notification]
    ) -> list[Notification]:
        inserted = []
        for notification in notifications:
            cursor = await db.execute(_INSERT_NOTIFICATION, notification.to_row())
            inserted.append(notification.with_id(cursor.lastrowid))
        return inserted

    # -- Planner ---------------------------------------------------------------

    async def delete_pending_for_task(self, task_id: str) -> int:
        """Delete the task's unsent notifications. Returns the number deleted."""
        async with self._session() as db:
            cursor = await db.execute(
                "DELETE FROM notifications WHERE task_id = ? AND is_sent = 0", (task_id,)
            )
            await db.commit()
            return cursor.rowcount

    async def insert_batch(self, notifications: Sequence[Notification]) -> list[Notification]:
        """Insert all notifications or none. Returns them with their new ids."""
        if not notifications:
            return []
        async with self._session() as db:
            inserted = await self._insert(db, notifications)
            await db.commit()
        return inserted

    async def replace_pending(
        self, task_id: str, notifications: Sequence[Notification]
    ) -> list[Notification]:
        """Swap the task's pending notifications for *notifications* atomically.

        The delete and the inserts commit together; on any failure the
        previous pending set is left untouched.
        """
        async with self._session() as db:
            cursor = await db.execute(
                "DELETE FROM notifications WHERE task_id = ? AND is_sent = 0", (task_id,)
            )
            removed = cursor.rowcount
            inserted = await self._insert(db, notifications)
            await db.commit()
        logger.debug(
            "Replaced pending notifications for task %s: removed=%d inserted=%d",
            task_id,
            removed,
            len(inserted),
        )
        return inserted

    # -- Delivery --------------------------------------------------------------

    async def find_due(self, before: datetime) -> list[Notification]:
        """Return unsent notifications scheduled at or before *before*."""
        async with self._session() as db:
            cursor = await db.execute(
                f"{_SELECT_NOTIFICATION} WHERE is_sent = 0 AND scheduled_for <= ? "
                "ORDER BY scheduled_for, id",
                (to_iso(before),),
            )
            rows = await cursor.fetchall()
        return [Notification.from_row(row) for row in rows]

    async def mark_sent(self, ids: Sequence[int]) -> int:
        """Flag the given notifications as sent. Returns the number updated."""
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        async with self._session() as db:
            cursor = await db.execute(
                f"UPDATE notifications SET is_sent = 1 WHERE id IN ({placeholders})",
                tuple(ids),
            )
            await db.commit()
            return cursor.rowcount

    # -- Housekeeping ----------------------------------------------------------

    async def delete_sent_before(self, timestamp: datetime) -> int:
        """Delete sent notifications scheduled before *timestamp*. Returns the count."""
        async with self._session() as db:
            cursor = await db.execute(
                "DELETE FROM notifications WHERE is_sent = 1 AND scheduled_for < ?",
                (to_iso(timestamp),),
            )
            await db.commit()
            return cursor.rowcount

    # -- Queries ---------------------------------------------------------------

    async def list_for_task(self, task_id: str, *, pending_only: bool = False) -> list[Notification]:
        """Return a task's notifications ordered by schedule."""
        query = f"{_SELECT_NOTIFICATION} WHERE task_id = ?"
        if pending_only:
            query += " AND is_sent = 0"
        async with self._session() as db:
            cursor = await db.execute(f"{query} ORDER BY scheduled_for, id", (task_id,))
            rows = await cursor.fetchall()
        return [Notification.from_row(row) for row in rows]

    async def find_overdue_candidates(self, now: datetime) -> list[Task]:
        """Return active, past-due tasks that want an overdue reminder.

        Tasks that already have an unsent overdue notification are excluded,
        so repeated scans never stack duplicates.
        """
        async with self._session() as db:
            cursor = await db.execute(
                _SELECT_OVERDUE_CANDIDATES, (to_iso(now), str(NotificationKind.OVERDUE))
            )
            rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]
