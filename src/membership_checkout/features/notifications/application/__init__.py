"""Notification application module."""

from membership_checkout.features.notifications.application.notifier import (
    ConfirmationNotifier,
)
from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
    EmailSenderPort,
    NotificationQueue,
)

__all__ = [
    "ConfirmationMessage",
    "ConfirmationNotifier",
    "EmailSenderPort",
    "NotificationQueue",
]
