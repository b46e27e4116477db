"""Notification channels: console (structlog) and webhook (httpx).

Email rendering and delivery are owned by an external service; deployments
point the webhook channel at it (or at Slack, an incident tool, ...).
"""

import structlog
import httpx

from src.notifications.base import NotificationChannel
from src.notifications.models import Notification

logger = structlog.get_logger(__name__)


class LogNotificationChannel(NotificationChannel):
    """Writes notifications to the structured log (console in development)."""

    name = "log"

    async def send(self, notification: Notification) -> None:
        logger.info(
            "notification_sent",
            channel=self.name,
            notification_event=notification.event,
            severity=notification.severity.value,
            recipient=notification.recipient,
            metadata=notification.metadata,
        )


class WebhookNotificationChannel(NotificationChannel):
    """POSTs notifications as JSON to a webhook endpoint.

    Attributes:
        url: Webhook endpoint URL.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize webhook channel.

        Args:
            url: Webhook endpoint URL.
            token: Optional bearer token for the Authorization header.
            timeout_seconds: Request timeout.
            client: Optional preconfigured client (tests inject a MockTransport).
        """
        self.url = url
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds, headers=headers
        )
        self._headers = headers

    async def send(self, notification: Notification) -> None:
        """POST the notification.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses.
        """
        response = await self._client.post(
            self.url,
            json=notification.model_dump(mode="json"),
            headers=self._headers,
        )
        response.raise_for_status()
        logger.debug(
            "webhook_notification_sent",
            url=self.url,
            status=response.status_code,
            notification_event=notification.event,
        )

    async def close(self) -> None:
        await self._client.aclose()
