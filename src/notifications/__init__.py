"""Fire-and-forget notifications for the security core.

Components depend on the Notifier protocol; BackgroundNotifier is the
production implementation, fanning out to console and webhook channels.
"""

from src.notifications.base import NotificationChannel, Notifier
from src.notifications.channels import LogNotificationChannel, WebhookNotificationChannel
from src.notifications.dispatcher import BackgroundNotifier
from src.notifications.models import Notification, NotificationSeverity

__all__ = [
    "BackgroundNotifier",
    "LogNotificationChannel",
    "Notification",
    "NotificationChannel",
    "NotificationSeverity",
    "Notifier",
    "WebhookNotificationChannel",
]
