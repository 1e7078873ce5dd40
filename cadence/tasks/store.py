"""TaskStore — aiosqlite CRUD for tasks and their completion history."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cadence.clock import to_iso
from cadence.db import SQLiteStore
from cadence.tasks.models import TASK_COLUMNS, Task, TaskHistory

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)

_SELECT_TASK = f"SELECT {', '.join(TASK_COLUMNS)} FROM tasks"
_INSERT_TASK = (
    f"INSERT INTO tasks ({', '.join(TASK_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in TASK_COLUMNS)})"
)


class TaskStore(SQLiteStore):
    """Persists tasks and task history in SQLite.

    Singleton accessed via ``TaskStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: TaskStore | None = None

    @classmethod
    def get(cls) -> TaskStore:
        """Return the shared TaskStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- CRUD ------------------------------------------------------------------

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Returns the same task object."""
        async with self._session() as db:
            await db.execute(_INSERT_TASK, task.to_row())
            await db.commit()
        logger.info("Added task: %s (%s)", task.title, task.id)
        return task

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        async with self._session() as db:
            cursor = await db.execute(f"{_SELECT_TASK} WHERE id = ?", (task_id,))
            row = await cursor.fetchone()
        return Task.from_row(row) if row else None

    async def list_tasks(self, owner_id: str | None = None) -> list[Task]:
        """Return all tasks, optionally restricted to one owner."""
        async with self._session() as db:
            if owner_id is None:
                cursor = await db.execute(f"{_SELECT_TASK} ORDER BY created_at, rowid")
            else:
                cursor = await db.execute(
                    f"{_SELECT_TASK} WHERE created_by = ? ORDER BY created_at, rowid", (owner_id,)
                )
            rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def update_task(self, task: Task) -> bool:
        """Replace a task's title, rule, due date, rolling flag and preferences.

        Returns True if a row was updated.
        """
        row = task.to_row()
        mutable = dict(zip(TASK_COLUMNS, row, strict=True))
        for column in ("id", "created_by", "created_at"):
            mutable.pop(column)
        assignments = ", ".join(f"{column} = ?" for column in mutable)
        async with self._session() as db:
            cursor = await db.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",
                (*mutable.values(), task.id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("Updated task: %s (%s)", task.title, task.id)
        return updated

    async def update_due_date(
        self,
        task_id: str,
        due_date: datetime | None,
        updated_at: datetime,
    ) -> bool:
        """Set or clear the next due date. Returns True if a row was updated."""
        async with self._session() as db:
            cursor = await db.execute(
                "UPDATE tasks SET next_due_date = ?, updated_at = ? WHERE id = ?",
                (to_iso(due_date), to_iso(updated_at), task_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def complete_task(
        self,
        task: Task,
        next_due_date: datetime | None,
        completed_at: datetime | None,
        updated_at: datetime,
    ) -> bool:
        """Append a history row and advance the due date in one transaction.

        *completed_at* is None for a skip.  When *next_due_date* is None the
        task has no further occurrence and is deactivated.
        """
        ts = to_iso(updated_at)
        async with self._session() as db:
            await db.execute(
                "INSERT INTO task_history (task_id, due_date, completed_date) VALUES (?, ?, ?)",
                (task.id, to_iso(task.next_due_date), to_iso(completed_at)),
            )
            if next_due_date is None:
                cursor = await db.execute(
                    "UPDATE tasks SET next_due_date = NULL, is_active = 0, updated_at = ? "
                    "WHERE id = ?",
                    (ts, task.id),
                )
            else:
                cursor = await db.execute(
                    "UPDATE tasks SET next_due_date = ?, updated_at = ? WHERE id = ?",
                    (to_iso(next_due_date), ts, task.id),
                )
            if cursor.rowcount == 0:
                await db.rollback()
                return False
            await db.commit()
        logger.info(
            "Recorded %s for task %s; next due %s",
            "completion" if completed_at else "skip",
            task.id,
            to_iso(next_due_date) or "never",
        )
        return True

    async def get_history(self, task_id: str) -> list[TaskHistory]:
        """Return a task's completion history, oldest first."""
        async with self._session() as db:
            cursor = await db.execute(
                "SELECT id, task_id, due_date, completed_date FROM task_history "
                "WHERE task_id = ? ORDER BY id",
                (task_id,),
            )
            rows = await cursor.fetchall()
        return [TaskHistory.from_row(row) for row in rows]

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task; its history and notifications cascade.

        Returns True if a row was deleted.
        """
        async with self._session() as db:
            cursor = await db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted task: %s", task_id)
        return deleted
