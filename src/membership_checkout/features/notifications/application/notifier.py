"""Builds confirmation messages for settled records and queues them."""

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.infrastructure.repository import UserRepository
from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
    NotificationQueue,
)
from membership_checkout.features.notifications.application.templates import (
    membership_confirmation,
    registration_confirmation,
)
from membership_checkout.features.offerings.infrastructure.repository import (
    OfferingRepository,
)
from membership_checkout.features.registrations.domain.entities import (
    DomainRecord,
    EventRegistration,
    Membership,
)

logger = structlog.get_logger(__name__)


class ConfirmationNotifier:
    """Turns a settled domain record into a queued confirmation e-mail."""

    def __init__(
        self, session: AsyncSession, queue: NotificationQueue, base_url: str
    ) -> None:
        self._queue = queue
        self._base_url = base_url.rstrip("/")
        self._users = UserRepository(session)
        self._offerings = OfferingRepository(session)

    async def notify(self, record: DomainRecord) -> bool:
        """
        Queue the confirmation for a record.

        Returns False when the message could not be built; the record
        stays settled either way.
        """
        try:
            message = await self._build(record)
        except SQLAlchemyError as exc:
            logger.error(
                "confirmation_build_failed",
                kind=record.kind.value,
                record_id=record.id,
                error=str(exc),
            )
            return False

        if message is None:
            logger.warning(
                "confirmation_skipped", kind=record.kind.value, record_id=record.id
            )
            return False

        self._queue.enqueue(message)
        logger.info(
            "confirmation_queued",
            kind=record.kind.value,
            record_id=record.id,
            recipient=message.recipient,
        )
        return True

    async def _build(self, record: DomainRecord) -> ConfirmationMessage | None:
        match record:
            case EventRegistration():
                event = await self._offerings.get_event(record.event_id)
                if event is None:
                    return None
                if record.guest is not None:
                    recipient, name = record.guest.email, record.guest.full_name
                else:
                    member = await self._users.get_member(record.user_id)
                    if member is None:
                        return None
                    recipient, name = member.email, member.display_name
                return registration_confirmation(
                    record, event, recipient, name, self._base_url
                )
            case Membership():
                level = await self._offerings.get_membership_level(
                    record.membership_level_id
                )
                member = await self._users.get_member(record.user_id)
                if level is None or member is None:
                    return None
                return membership_confirmation(
                    record, level, member.email, member.display_name, self._base_url
                )
        return None
