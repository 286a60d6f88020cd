"""E-mail sender that only logs. For development."""

import structlog

from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
    EmailSenderPort,
)

logger = structlog.get_logger(__name__)


class LogEmailSender(EmailSenderPort):
    async def send(self, message: ConfirmationMessage) -> None:
        logger.info(
            "email_logged",
            recipient=message.recipient,
            subject=message.subject,
            body=message.text,
        )
