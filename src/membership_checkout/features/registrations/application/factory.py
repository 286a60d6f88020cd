"""Domain record factory.

Creates event registrations and memberships, and moves them between
settled and cancelled states.
"""

from datetime import datetime, timedelta

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.domain.actors import (
    ActorContext,
    GuestActor,
    MemberActor,
)
from membership_checkout.features.checkout.domain.models import ValidatedCheckout
from membership_checkout.features.offerings.domain.entities import Event, MembershipLevel
from membership_checkout.features.offerings.infrastructure.repository import (
    OfferingRepository,
)
from membership_checkout.features.registrations.domain.entities import (
    DomainRecord,
    EventRegistration,
    Membership,
)
from membership_checkout.features.registrations.domain.enums import (
    MembershipOperation,
    MembershipStatus,
    RecordKind,
    RegistrationStatus,
    membership_sources,
    registration_sources,
)
from membership_checkout.features.registrations.infrastructure.repository import (
    MembershipRepository,
    RegistrationRepository,
)
from membership_checkout.shared.domain.clock import utcnow
from membership_checkout.shared.domain.exceptions import (
    CheckoutError,
    LedgerWriteError,
    RecordNotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class DomainRecordFactory:
    """Creates and transitions registrations and memberships."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._offerings = OfferingRepository(session)
        self._registrations = RegistrationRepository(session)
        self._memberships = MembershipRepository(session)

    async def create(
        self,
        validated: ValidatedCheckout,
        actor: ActorContext,
        status: RegistrationStatus | MembershipStatus,
    ) -> DomainRecord:
        """
        Persist a new domain record in a single commit.

        Args:
            validated: Output of the validator
            actor: Member or guest the record belongs to
            status: PENDING for paid flows, PAID/ACTIVE for free ones

        Raises:
            ValidationError: Capacity ran out or a concurrent duplicate won
            LedgerWriteError: The write failed
        """
        try:
            match validated.offering:
                case Event() as event:
                    record = await self._create_registration(
                        event, validated, actor, RegistrationStatus(status)
                    )
                case MembershipLevel() as level:
                    record = await self._create_membership(
                        level, validated, actor, MembershipStatus(status)
                    )
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning("record_create_conflict", error=str(exc.orig))
            raise ValidationError("Already registered for this event") from exc
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise LedgerWriteError("create_record", str(exc)) from exc
        except CheckoutError:
            await self._session.rollback()
            raise

        logger.info(
            "record_created",
            kind=record.kind.value,
            record_id=record.id,
            public_id=record.public_id,
            status=record.status.value,
        )
        return record

    async def _create_registration(
        self,
        event: Event,
        validated: ValidatedCheckout,
        actor: ActorContext,
        status: RegistrationStatus,
    ) -> EventRegistration:
        # Serialise seat allocation per event
        locked = await self._offerings.get_event(event.id, lock=True)
        if locked is None:
            raise ValidationError("Event not found")

        if validated.stale_record is not None:
            superseded = await self._registrations.transition(
                validated.stale_record.id,
                RegistrationStatus.CANCELLED,
                [RegistrationStatus.PENDING],
            )
            if superseded:
                logger.info(
                    "stale_registration_superseded",
                    registration_id=validated.stale_record.id,
                )

        if locked.capacity is not None:
            taken = await self._registrations.count_live(locked.id)
            if taken >= locked.capacity:
                raise ValidationError("Event is full")

        tier = validated.tier
        if tier is not None and tier.quota is not None:
            taken = await self._registrations.count_live_for_level(
                locked.id, tier.membership_level_id
            )
            if taken >= tier.quota:
                raise ValidationError("No seats left for your membership tier")

        match actor:
            case MemberActor(user_id=user_id):
                return await self._registrations.create(
                    event_id=locked.id,
                    status=status,
                    price=validated.price,
                    currency=validated.currency,
                    user_id=user_id,
                    membership_level_id=validated.membership_level_id,
                )
            case GuestActor(contact=contact):
                return await self._registrations.create(
                    event_id=locked.id,
                    status=status,
                    price=validated.price,
                    currency=validated.currency,
                    guest=contact,
                )

    async def _create_membership(
        self,
        level: MembershipLevel,
        validated: ValidatedCheckout,
        actor: ActorContext,
        status: MembershipStatus,
    ) -> Membership:
        if not isinstance(actor, MemberActor):
            raise ValidationError("Memberships require a signed-in member")

        current = validated.current_membership
        membership = await self._memberships.create(
            user_id=actor.user_id,
            membership_level_id=level.id,
            operation=validated.operation or MembershipOperation.NEW,
            status=MembershipStatus.PENDING,
            price=validated.price,
            currency=validated.currency,
            previous_membership_id=current.id if current else None,
        )
        if status == MembershipStatus.ACTIVE:
            await self._activate_membership(membership.id)
            return await self._memberships.get_by_id(membership.id)
        return membership

    async def get(self, kind: RecordKind, record_id: int) -> DomainRecord:
        """Load a record by kind and internal ID."""
        if kind == RecordKind.EVENT_REGISTRATION:
            record = await self._registrations.get_by_id(record_id)
        else:
            record = await self._memberships.get_by_id(record_id)
        if record is None:
            raise RecordNotFoundError(kind.value, str(record_id))
        return record

    async def get_by_public_id(self, kind: RecordKind, public_id: str) -> DomainRecord:
        """Load a record by kind and public ID."""
        if kind == RecordKind.EVENT_REGISTRATION:
            record = await self._registrations.get_by_public_id(public_id)
        else:
            record = await self._memberships.get_by_public_id(public_id)
        if record is None:
            raise RecordNotFoundError(kind.value, public_id)
        return record

    async def activate(self, kind: RecordKind, record_id: int) -> bool:
        """
        Settle a PENDING record (registration PAID, membership ACTIVE).

        Flushes only. Returns True when the record actually transitioned,
        False when it was already settled.
        """
        if kind == RecordKind.EVENT_REGISTRATION:
            if await self._registrations.get_by_id(record_id) is None:
                raise RecordNotFoundError(kind.value, str(record_id))
            changed = await self._registrations.transition(
                record_id,
                RegistrationStatus.PAID,
                registration_sources(RegistrationStatus.PAID),
            )
        else:
            changed = await self._activate_membership(record_id)

        if changed:
            logger.info("record_activated", kind=kind.value, record_id=record_id)
        return changed

    async def cancel(
        self, kind: RecordKind, record_id: int, *, pending_only: bool = False
    ) -> bool:
        """
        Cancel a record, releasing its seat. Flushes only.

        With `pending_only` a settled record is left alone.
        Returns True when the record actually transitioned.
        """
        if kind == RecordKind.EVENT_REGISTRATION:
            sources = (
                [RegistrationStatus.PENDING]
                if pending_only
                else registration_sources(RegistrationStatus.CANCELLED)
            )
            changed = await self._registrations.transition(
                record_id, RegistrationStatus.CANCELLED, sources
            )
        else:
            sources = (
                [MembershipStatus.PENDING]
                if pending_only
                else membership_sources(MembershipStatus.CANCELLED)
            )
            changed = await self._memberships.transition(
                record_id, MembershipStatus.CANCELLED, sources
            )

        if changed:
            logger.info("record_cancelled", kind=kind.value, record_id=record_id)
        return changed

    async def _activate_membership(
        self, membership_id: int, now: datetime | None = None
    ) -> bool:
        now = now or utcnow()
        membership = await self._memberships.get_by_id(membership_id)
        if membership is None:
            raise RecordNotFoundError(RecordKind.MEMBERSHIP.value, str(membership_id))
        if membership.status != MembershipStatus.PENDING:
            return False

        level = await self._offerings.get_membership_level(membership.membership_level_id)
        if level is None:
            raise RecordNotFoundError("membership level", str(membership.membership_level_id))
        duration = timedelta(days=level.duration_days)

        previous = await self._memberships.get_active_for_user(
            membership.user_id, now, exclude_id=membership.id
        )
        if (
            membership.operation == MembershipOperation.EXTEND
            and previous is not None
            and previous.end_date is not None
        ):
            start_date = previous.start_date or now
            end_date = previous.end_date + duration
        else:
            start_date = now
            end_date = now + duration

        changed = await self._memberships.transition(
            membership.id,
            MembershipStatus.ACTIVE,
            [MembershipStatus.PENDING],
            start_date=start_date,
            end_date=end_date,
            previous_membership_id=previous.id if previous else membership.previous_membership_id,
        )
        if changed and previous is not None:
            await self._memberships.transition(
                previous.id, MembershipStatus.SUPERSEDED, [MembershipStatus.ACTIVE]
            )
            logger.info(
                "membership_superseded",
                membership_id=previous.id,
                replaced_by=membership.id,
            )
        return changed
