"""Notification ports."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfirmationMessage:
    """A confirmation e-mail, fully rendered at enqueue time."""

    recipient: str
    recipient_name: str
    subject: str
    text: str
    html: str | None = None


class EmailSenderPort(ABC):
    """Delivers one e-mail. Raises NotificationError on failure."""

    @abstractmethod
    async def send(self, message: ConfirmationMessage) -> None:
        pass


class NotificationQueue(ABC):
    """Hands messages off the request path."""

    @abstractmethod
    def enqueue(self, message: ConfirmationMessage) -> None:
        pass
