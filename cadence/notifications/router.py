"""NotificationRouter — picks a delivery channel for each due reminder."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cadence.notifications.channels import NotificationChannel
    from cadence.notifications.models import Notification

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Holds the delivery channels and hands each notification to one of them.

    A notification goes to the channel named by the caller, else the default
    channel, else the sole registered channel. With nothing to pick from the
    notification is left undelivered.

    Singleton accessed via ``NotificationRouter.get()``.
    """

    _instance: NotificationRouter | None = None

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._default: str | None = None

    @classmethod
    def get(cls) -> NotificationRouter:
        """Return the shared router, creating it on first use."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Drop the shared router (for testing)."""
        cls._instance = None

    # -- Channels --------------------------------------------------------------

    def register_channel(self, channel: NotificationChannel, *, default: bool = False) -> None:
        """Add *channel*; optionally make it the default. Names must be unique."""
        if channel.name in self._channels:
            msg = f"A channel named '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel
        if default:
            self._default = channel.name
        logger.info("Registered notification channel: %s", channel.name)

    def set_default_channel(self, name: str) -> None:
        if name not in self._channels:
            msg = f"Cannot default to '{name}': not registered"
            raise KeyError(msg)
        self._default = name

    def get_channel(self, name: str) -> NotificationChannel | None:
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        return list(self._channels)

    def resolve_channel(self, name: str | None = None) -> NotificationChannel | None:
        """Return the channel a notification would be sent through, if any."""
        if name:
            return self._channels.get(name)
        if self._default is not None:
            return self._channels[self._default]
        if len(self._channels) == 1:
            (only,) = self._channels.values()
            return only
        return None

    # -- Delivery --------------------------------------------------------------

    async def deliver(self, notification: Notification, *, channel: str | None = None) -> bool:
        """Send *notification*'s text to its recipient. Returns True once delivered."""
        target = self.resolve_channel(channel)
        if target is None:
            logger.warning(
                "No channel for %s notification %s (requested=%s)",
                notification.kind,
                notification.id,
                channel,
            )
            return False
        delivered = await target.send(notification.user_id, notification.text)
        logger.debug(
            "%s notification %s for task %s via %s: %s",
            notification.kind,
            notification.id,
            notification.task_id,
            target.name,
            "delivered" if delivered else "failed",
        )
        return delivered
