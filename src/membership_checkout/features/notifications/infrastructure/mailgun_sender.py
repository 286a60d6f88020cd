"""Mailgun HTTP API e-mail sender."""

import httpx
import structlog

from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
    EmailSenderPort,
)
from membership_checkout.shared.core.settings import Settings, get_settings
from membership_checkout.shared.domain.exceptions import NotificationError

logger = structlog.get_logger(__name__)


class MailgunEmailSender(EmailSenderPort):
    """
    Sends e-mail through the Mailgun messages endpoint.

    POST {api_url}/{domain}/messages with basic auth ("api", key).
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._url = f"{settings.mailgun_api_url.rstrip('/')}/{settings.mailgun_domain}/messages"
        self._api_key = settings.mailgun_api_key
        self._sender = settings.email_from
        self._timeout = settings.email_timeout

    async def send(self, message: ConfirmationMessage) -> None:
        """
        Send one message.

        Raises:
            NotificationError: Mailgun rejected the message or was unreachable
        """
        data = {
            "from": self._sender,
            "to": f"{message.recipient_name} <{message.recipient}>",
            "subject": message.subject,
            "text": message.text,
        }
        if message.html:
            data["html"] = message.html

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._url,
                    auth=("api", self._api_key),
                    data=data,
                )
        except httpx.TimeoutException as e:
            raise NotificationError(message.recipient, "Mailgun timed out") from e
        except httpx.RequestError as e:
            raise NotificationError(message.recipient, str(e)) from e

        if response.status_code >= 300:
            raise NotificationError(
                message.recipient,
                f"Mailgun returned {response.status_code}: {response.text}",
            )

        logger.info("email_sent", recipient=message.recipient, subject=message.subject)
