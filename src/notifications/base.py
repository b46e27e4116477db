"""Notification interfaces.

Two seams:
    - Notifier: what security components call. ``notify`` is synchronous and
      must return immediately (enqueue and return); delivery success is
      never reported back to the caller.
    - NotificationChannel: one delivery mechanism (console, webhook, ...).
      Channels may raise; the dispatcher logs and contains their failures.
"""

from abc import ABC, abstractmethod
from typing import Protocol

from src.notifications.models import Notification


class Notifier(Protocol):
    """Fire-and-forget notification sink used by the security components."""

    def notify(self, notification: Notification) -> None:
        """Enqueue a notification without waiting for delivery."""
        ...


class NotificationChannel(ABC):
    """One delivery mechanism for notifications."""

    name: str = "channel"

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver a notification.

        Raises:
            Exception: Any delivery failure (logged by the dispatcher).
        """
        pass

    async def close(self) -> None:
        """Release channel resources (HTTP clients, connections)."""
        return None
