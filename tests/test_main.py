"""Tests for entry-point wiring."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cadence.main import build_router, build_service, run
from cadence.notifications.planner import NotificationPlanner
from cadence.notifications.router import NotificationRouter
from cadence.notifications.store import NotificationStore
from cadence.tasks.service import TaskService
from cadence.tasks.store import TaskStore


def test_build_router_without_webhook(router: NotificationRouter, monkeypatch) -> None:
    monkeypatch.setattr("cadence.config.settings.notification_webhook_url", "")
    assert build_router() is router
    assert router.list_channels() == []


def test_build_router_registers_webhook(router: NotificationRouter, monkeypatch) -> None:
    monkeypatch.setattr(
        "cadence.config.settings.notification_webhook_url", "https://hooks.example.com"
    )
    monkeypatch.setattr("cadence.config.settings.default_notification_channel", "webhook")

    build_router()
    build_router()

    assert router.list_channels() == ["webhook"]
    email = MagicMock()
    email.name = "email"
    router.register_channel(email)
    assert router.resolve_channel() is router.get_channel("webhook")


def test_build_service(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr("cadence.config.settings.database_path", tmp_path / "test.db")
    TaskStore._reset()
    NotificationStore._reset()
    try:
        service = build_service()
        assert isinstance(service, TaskService)
        assert isinstance(service.planner, NotificationPlanner)
        assert TaskStore.get().db_path == tmp_path / "test.db"
    finally:
        TaskStore._reset()
        NotificationStore._reset()


async def test_run_stops_engine_on_cancel(
    router: NotificationRouter, notification_store: NotificationStore, monkeypatch
) -> None:
    engine = MagicMock()
    engine.start = AsyncMock()
    engine.stop = AsyncMock()
    monkeypatch.setattr(NotificationStore, "_instance", notification_store)
    monkeypatch.setattr("cadence.main.JobEngine", MagicMock(return_value=engine))
    monkeypatch.setattr("cadence.config.settings.notification_webhook_url", "")

    runner = asyncio.create_task(run())
    await asyncio.sleep(0.01)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    engine.start.assert_awaited_once()
    engine.stop.assert_awaited_once()
