"""Delivery sweep and housekeeping for planned notifications."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import timedelta

    from cadence.clock import Clock
    from cadence.notifications.router import NotificationRouter
    from cadence.notifications.store import NotificationStore

logger = logging.getLogger(__name__)


async def deliver_due_notifications(
    store: NotificationStore,
    router: NotificationRouter,
    clock: Clock,
    *,
    channel: str | None = None,
) -> int:
    """Send every pending notification that is due and mark it sent.

    A notification whose send fails stays pending and is retried by the
    next sweep. Returns the number delivered.
    """
    due = await store.find_due(clock.now())
    if not due:
        return 0

    delivered: list[int] = []
    for notification in due:
        try:
            ok = await router.deliver(notification, channel=channel)
        except Exception:
            logger.exception(
                "Delivery raised for notification %s (task %s)",
                notification.id,
                notification.task_id,
            )
            continue
        if ok:
            delivered.append(notification.id)
        else:
            logger.warning(
                "Delivery failed for notification %s (task %s); will retry",
                notification.id,
                notification.task_id,
            )

    await store.mark_sent(delivered)
    logger.info("Delivered %d of %d due notification(s)", len(delivered), len(due))
    return len(delivered)


async def cleanup_sent_notifications(
    store: NotificationStore, clock: Clock, retention: timedelta
) -> int:
    """Delete sent notifications older than *retention*. Returns the count."""
    deleted = await store.delete_sent_before(clock.now() - retention)
    if deleted:
        logger.info("Removed %d sent notification(s) older than %s", deleted, retention)
    return deleted
