"""Async SQLite access shared by the task and notification stores.

Both stores live in one database file so that task deletion cascades to
history and notification rows through foreign keys. ``PRAGMA foreign_keys``
is per-connection in SQLite, so every connection opened here enables it.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import aiosqlite

from cadence.config import settings
from cadence.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    created_by TEXT NOT NULL,
    frequency_type TEXT NOT NULL,
    frequency_on TEXT,
    frequency_every INTEGER,
    frequency_unit TEXT,
    frequency_days TEXT,
    frequency_months TEXT,
    next_due_date TEXT,
    is_rolling INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    notification_enabled INTEGER NOT NULL DEFAULT 0,
    notification_due_date INTEGER NOT NULL DEFAULT 0,
    notification_pre_due INTEGER NOT NULL DEFAULT 0,
    notification_overdue INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_tasks_next_due_date ON tasks (next_due_date);
CREATE INDEX IF NOT EXISTS idx_tasks_created_by ON tasks (created_by);

CREATE TABLE IF NOT EXISTS task_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id TEXT NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
    due_date TEXT,
    completed_date TEXT
);
CREATE INDEX IF NOT EXISTS idx_task_history_task_id ON task_history (task_id);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id TEXT NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    text TEXT NOT NULL,
    is_sent INTEGER NOT NULL DEFAULT 0,
    scheduled_for TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notifications_task_id ON notifications (task_id);
CREATE INDEX IF NOT EXISTS idx_notifications_pending ON notifications (is_sent, scheduled_for);
"""


async def connect(db_path: Path, *, initialise: bool = False) -> aiosqlite.Connection:
    """Open a connection with foreign keys, WAL mode and a busy timeout.

    When *initialise* is true the schema is created if it does not exist yet.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    try:
        await db.execute("PRAGMA foreign_keys=ON")
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute(f"PRAGMA busy_timeout={int(settings.database_busy_timeout_ms)}")
        if initialise:
            await db.executescript(SCHEMA)
            await db.commit()
    except BaseException:
        await db.close()
        raise
    return db


class SQLiteStore:
    """Base class for stores backed by the shared SQLite database.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection; driver errors surface as :class:`StoreError`.

        Work that was not committed when the block exits is discarded when
        the connection closes.
        """
        try:
            db = await connect(self._db_path, initialise=not self._initialised)
        except aiosqlite.Error as exc:
            logger.exception("Could not open database: %s", self._db_path)
            msg = f"Could not open database {self._db_path}: {exc}"
            raise StoreError(msg) from exc
        self._initialised = True
        try:
            yield db
        except aiosqlite.Error as exc:
            msg = f"Database operation failed: {exc}"
            raise StoreError(msg) from exc
        finally:
            await db.close()
