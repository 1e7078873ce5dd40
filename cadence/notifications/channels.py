"""Delivery channel interface.

A channel carries a rendered reminder to its recipient over one transport
(an HTTP webhook, email, a chat bot). Returning False from ``send`` leaves
the reminder pending so the next delivery sweep retries it.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationChannel(Protocol):
    name: str

    async def send(self, user_id: str, message: str) -> bool: ...
