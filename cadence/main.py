"""Cadence entry point — runs the notification jobs until interrupted."""

import asyncio
import contextlib
import logging

from cadence.clock import SystemClock
from cadence.config import settings
from cadence.jobs import JobEngine
from cadence.notifications import (
    NotificationPlanner,
    NotificationRouter,
    NotificationStore,
    WebhookChannel,
)
from cadence.tasks import TaskService, TaskStore

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def build_router() -> NotificationRouter:
    """Register the configured delivery channels on the shared router."""
    router = NotificationRouter.get()
    if settings.notification_webhook_url and router.get_channel("webhook") is None:
        router.register_channel(WebhookChannel())
    if settings.default_notification_channel:
        router.set_default_channel(settings.default_notification_channel)
    if not router.list_channels():
        logger.warning("No notification channels configured — reminders will stay pending")
    return router


def build_service(clock: SystemClock | None = None) -> TaskService:
    """Wire the task service used by request handlers."""
    clock = clock or SystemClock()
    planner = NotificationPlanner(NotificationStore.get(), clock=clock, tasks=TaskStore.get())
    return TaskService(TaskStore.get(), planner, clock=clock)


async def run() -> None:
    """Start the periodic jobs and block until cancelled."""
    engine = JobEngine(NotificationStore.get(), build_router(), clock=SystemClock())
    await engine.start()
    logger.info("Cadence running (database=%s)", settings.database_path)
    try:
        await asyncio.Event().wait()
    finally:
        await engine.stop()


def main() -> None:
    """Run Cadence's background jobs."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())
    logger.info("Cadence stopped")


if __name__ == "__main__":
    main()
