"""Background notifier: enqueue and return, deliver on a worker task.

The security components must never block a request on notification
delivery. ``BackgroundNotifier.notify`` only puts the notification on a
bounded asyncio.Queue and returns; one worker task drains the queue and fans
each notification out to every channel concurrently.

Key behaviors:
    - Fail-open delivery: channel errors are logged per channel
      (asyncio.gather with return_exceptions=True), never propagated and never
      retried synchronously
    - Bounded memory: a full queue drops the notification and logs
      ``notification_dropped``
    - Graceful shutdown: ``stop()`` drains pending notifications, then
      cancels the worker and closes channels

Usage:
    >>> notifier = BackgroundNotifier([LogNotificationChannel()], queue_size=1000)
    >>> await notifier.start()
    >>> notifier.notify(Notification(event="account_locked", recipient="a@b.c"))
    >>> await notifier.stop()
"""

import asyncio
from typing import Sequence

import structlog

from src.notifications.base import NotificationChannel
from src.notifications.models import Notification

logger = structlog.get_logger(__name__)


class BackgroundNotifier:
    """Bounded-queue notifier implementing the Notifier protocol.

    Attributes:
        channels: Delivery channels every notification is fanned out to.
    """

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        queue_size: int = 1000,
    ) -> None:
        """Initialize notifier.

        Args:
            channels: Delivery channels.
            queue_size: Maximum pending notifications.

        Raises:
            ValueError: If queue_size is not positive.
        """
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.channels = list(channels)
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task[None] | None = None
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def notify(self, notification: Notification) -> None:
        """Enqueue a notification and return immediately.

        Args:
            notification: Notification to deliver.
        """
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "notification_dropped",
                notification_event=notification.event,
                recipient=notification.recipient,
                dropped_total=self.dropped,
            )

    async def start(self) -> None:
        """Start the delivery worker (idempotent)."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="background-notifier")
        logger.info(
            "notifier_started", channels=[channel.name for channel in self.channels]
        )

    async def drain(self) -> None:
        """Wait until every queued notification has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Drain pending notifications, stop the worker, close channels."""
        if self.running:
            await self.drain()
            assert self._worker is not None
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        for channel in self.channels:
            await channel.close()
        logger.info("notifier_stopped", dropped_total=self.dropped)

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self._deliver(notification)
            finally:
                self._queue.task_done()

    async def _deliver(self, notification: Notification) -> None:
        results = await asyncio.gather(
            *(channel.send(notification) for channel in self.channels),
            return_exceptions=True,
        )
        for channel, result in zip(self.channels, results):
            if isinstance(result, Exception):
                logger.error(
                    "notification_channel_failed",
                    channel=channel.name,
                    notification_event=notification.event,
                    recipient=notification.recipient,
                    error_type=type(result).__name__,
                    error_message=str(result),
                )
