"""Reminder planning, storage and delivery."""

from cadence.notifications.channels import NotificationChannel
from cadence.notifications.delivery import cleanup_sent_notifications, deliver_due_notifications
from cadence.notifications.models import Notification, NotificationKind
from cadence.notifications.overdue import check_overdue_tasks
from cadence.notifications.planner import NotificationPlanner, build_notifications
from cadence.notifications.router import NotificationRouter
from cadence.notifications.store import NotificationStore
from cadence.notifications.webhook_channel import WebhookChannel

__all__ = [
    "Notification",
    "NotificationChannel",
    "NotificationKind",
    "NotificationPlanner",
    "NotificationRouter",
    "NotificationStore",
    "WebhookChannel",
    "build_notifications",
    "check_overdue_tasks",
    "cleanup_sent_notifications",
    "deliver_due_notifications",
]
