"""Overdue scan — reminds owners once a task's due time has passed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cadence.notifications.models import Notification, NotificationKind

if TYPE_CHECKING:
    from cadence.clock import Clock
    from cadence.notifications.store import NotificationStore

logger = logging.getLogger(__name__)


async def check_overdue_tasks(store: NotificationStore, clock: Clock) -> int:
    """Emit one overdue notification per past-due task that asks for it.

    Tasks that still have an unsent overdue notification are skipped, so
    the scan is idempotent. Returns the number of notifications created.
    """
    now = clock.now()
    tasks = await store.find_overdue_candidates(now)
    if not tasks:
        logger.debug("Overdue scan found nothing")
        return 0

    notifications = [
        Notification(
            task_id=task.id,
            user_id=task.created_by,
            kind=NotificationKind.OVERDUE,
            scheduled_for=now,
            text=f"🚨 *{task.title}* is overdue",
            created_at=now,
        )
        for task in tasks
    ]
    await store.insert_batch(notifications)
    logger.info("Overdue scan queued %d notification(s)", len(notifications))
    return len(notifications)
