"""Notification queue backed by FastAPI background tasks."""

import structlog
from fastapi import BackgroundTasks

from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
    EmailSenderPort,
    NotificationQueue,
)
from membership_checkout.shared.domain.exceptions import NotificationError

logger = structlog.get_logger(__name__)


async def deliver(sender: EmailSenderPort, message: ConfirmationMessage) -> None:
    """Send a message; failures are logged, never raised."""
    try:
        await sender.send(message)
    except NotificationError as exc:
        logger.error(
            "confirmation_send_failed", recipient=exc.recipient, error=str(exc)
        )


class BackgroundTaskNotificationQueue(NotificationQueue):
    """Runs delivery after the HTTP response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, sender: EmailSenderPort) -> None:
        self._background_tasks = background_tasks
        self._sender = sender

    def enqueue(self, message: ConfirmationMessage) -> None:
        self._background_tasks.add_task(deliver, self._sender, message)
