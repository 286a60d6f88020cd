"""E-mail sender factory - Dependency injection."""

from functools import lru_cache

from membership_checkout.features.notifications.application.ports import EmailSenderPort
from membership_checkout.features.notifications.infrastructure.log_sender import (
    LogEmailSender,
)
from membership_checkout.features.notifications.infrastructure.mailgun_sender import (
    MailgunEmailSender,
)
from membership_checkout.shared.core.settings import get_settings


@lru_cache
def get_email_sender() -> EmailSenderPort:
    """Get the e-mail sender based on configuration."""
    settings = get_settings()

    match settings.email_provider:
        case "mailgun":
            return MailgunEmailSender(settings)
        case _:
            return LogEmailSender()
