"""Notification infrastructure module."""

from membership_checkout.features.notifications.infrastructure.background_queue import (
    BackgroundTaskNotificationQueue,
)
from membership_checkout.features.notifications.infrastructure.sender_factory import (
    get_email_sender,
)

__all__ = ["BackgroundTaskNotificationQueue", "get_email_sender"]
