"""Webhook implementation of the NotificationChannel protocol.

Posts ``{"user_id": ..., "message": ...}`` as JSON to a configured URL and
leaves the last mile (email, push, chat) to whatever listens there.
"""

from __future__ import annotations

import logging

import httpx

from cadence.config import settings

logger = logging.getLogger(__name__)


class WebhookChannel:
    """Sends reminders by POSTing them to an HTTP endpoint."""

    name = "webhook"

    def __init__(
        self,
        url: str | None = None,
        *,
        secret: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._url = url or settings.notification_webhook_url
        self._secret = secret if secret is not None else settings.notification_webhook_secret
        self._timeout = timeout or settings.notification_webhook_timeout_seconds

    async def send(self, user_id: str, message: str) -> bool:
        """POST the message; any 2xx response counts as delivered."""
        if not self._url:
            logger.error("Webhook channel not configured — missing NOTIFICATION_WEBHOOK_URL")
            return False

        headers = {"X-Webhook-Secret": self._secret} if self._secret else {}
        payload = {"user_id": user_id, "message": message}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError:
            logger.exception("Webhook send failed (network error) for user_id=%s", user_id)
            return False

        if resp.is_success:
            logger.info("Webhook delivered notification to user_id=%s", user_id)
            return True
        logger.error(
            "Webhook send failed: status=%d body=%s", resp.status_code, resp.text[:200]
        )
        return False
