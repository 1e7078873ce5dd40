"""Tasks — data model, persistence and mutation service."""

from cadence.tasks.models import NotificationPreferences, Task, TaskHistory, make_task_id
from cadence.tasks.service import TaskService
from cadence.tasks.store import TaskStore

__all__ = [
    "NotificationPreferences",
    "Task",
    "TaskHistory",
    "TaskService",
    "TaskStore",
    "make_task_id",
]
