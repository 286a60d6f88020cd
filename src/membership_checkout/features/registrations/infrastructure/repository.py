"""Registration and membership repositories.

Writes flush only; the service that owns the unit of work commits.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.registrations.domain.entities import (
    EventRegistration,
    GuestContact,
    Membership,
)
from membership_checkout.features.registrations.domain.enums import (
    LIVE_REGISTRATION_STATUSES,
    MembershipOperation,
    MembershipStatus,
    RegistrationStatus,
)
from membership_checkout.shared.domain.clock import new_public_id
from membership_checkout.shared.infrastructure.database.models import (
    EventRegistrationModel,
    MembershipModel,
)

_LIVE = [s.value for s in LIVE_REGISTRATION_STATUSES]


class RegistrationRepository:
    """Event registration persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        event_id: int,
        status: RegistrationStatus,
        price: Decimal,
        currency: str,
        user_id: int | None = None,
        guest: GuestContact | None = None,
        membership_level_id: int | None = None,
    ) -> EventRegistration:
        """Insert a registration and flush it to obtain its ID."""
        model = EventRegistrationModel(
            public_id=new_public_id(),
            event_id=event_id,
            user_id=user_id,
            guest_full_name=guest.full_name if guest else None,
            guest_email=guest.email.lower() if guest else None,
            guest_phone=guest.phone if guest else None,
            membership_level_id=membership_level_id,
            price=price,
            currency=currency,
            status=status.value,
        )
        self._session.add(model)
        await self._session.flush()
        return model.to_domain()

    async def get_by_id(self, registration_id: int) -> Optional[EventRegistration]:
        """Get a registration by its internal ID."""
        result = await self._session.execute(
            select(EventRegistrationModel)
            .where(EventRegistrationModel.id == registration_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def get_by_public_id(self, public_id: str) -> Optional[EventRegistration]:
        """Get a registration by its public ID."""
        result = await self._session.execute(
            select(EventRegistrationModel)
            .where(EventRegistrationModel.public_id == public_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def count_live(self, event_id: int) -> int:
        """Count registrations holding a seat on an event."""
        result = await self._session.execute(
            select(func.count(EventRegistrationModel.id)).where(
                EventRegistrationModel.event_id == event_id,
                EventRegistrationModel.status.in_(_LIVE),
            )
        )
        return result.scalar_one()

    async def count_live_for_level(self, event_id: int, membership_level_id: int) -> int:
        """Count live registrations priced with one membership level's tier."""
        result = await self._session.execute(
            select(func.count(EventRegistrationModel.id)).where(
                EventRegistrationModel.event_id == event_id,
                EventRegistrationModel.membership_level_id == membership_level_id,
                EventRegistrationModel.status.in_(_LIVE),
            )
        )
        return result.scalar_one()

    async def find_live_for_member(
        self, event_id: int, user_id: int
    ) -> Optional[EventRegistration]:
        """The member's registration on an event that still holds a seat."""
        result = await self._session.execute(
            select(EventRegistrationModel)
            .where(
                EventRegistrationModel.event_id == event_id,
                EventRegistrationModel.user_id == user_id,
                EventRegistrationModel.status.in_(_LIVE),
            )
            .order_by(EventRegistrationModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def find_live_for_guest(
        self, event_id: int, email: str
    ) -> Optional[EventRegistration]:
        """A guest registration on an event with the same e-mail."""
        result = await self._session.execute(
            select(EventRegistrationModel)
            .where(
                EventRegistrationModel.event_id == event_id,
                EventRegistrationModel.user_id.is_(None),
                func.lower(EventRegistrationModel.guest_email) == email.lower(),
                EventRegistrationModel.status.in_(_LIVE),
            )
            .order_by(EventRegistrationModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def transition(
        self,
        registration_id: int,
        target: RegistrationStatus,
        sources: Iterable[RegistrationStatus],
    ) -> bool:
        """
        Move a registration to `target` if it is currently in one of `sources`.

        Returns:
            True when a row changed
        """
        result = await self._session.execute(
            update(EventRegistrationModel)
            .where(
                EventRegistrationModel.id == registration_id,
                EventRegistrationModel.status.in_([s.value for s in sources]),
            )
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class MembershipRepository:
    """Membership persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        user_id: int,
        membership_level_id: int,
        operation: MembershipOperation,
        status: MembershipStatus,
        price: Decimal,
        currency: str,
        previous_membership_id: int | None = None,
    ) -> Membership:
        """Insert a membership and flush it to obtain its ID."""
        model = MembershipModel(
            public_id=new_public_id(),
            user_id=user_id,
            membership_level_id=membership_level_id,
            operation=operation.value,
            status=status.value,
            price=price,
            currency=currency,
            previous_membership_id=previous_membership_id,
        )
        self._session.add(model)
        await self._session.flush()
        return model.to_domain()

    async def get_by_id(self, membership_id: int) -> Optional[Membership]:
        """Get a membership by its internal ID."""
        result = await self._session.execute(
            select(MembershipModel)
            .where(MembershipModel.id == membership_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def get_by_public_id(self, public_id: str) -> Optional[Membership]:
        """Get a membership by its public ID."""
        result = await self._session.execute(
            select(MembershipModel)
            .where(MembershipModel.public_id == public_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def get_active_for_user(
        self, user_id: int, now: datetime, *, exclude_id: int | None = None
    ) -> Optional[Membership]:
        """The member's current ACTIVE membership, if any."""
        stmt = select(MembershipModel).where(
            MembershipModel.user_id == user_id,
            MembershipModel.status == MembershipStatus.ACTIVE.value,
        )
        if exclude_id is not None:
            stmt = stmt.where(MembershipModel.id != exclude_id)
        result = await self._session.execute(
            stmt.order_by(MembershipModel.end_date.desc(), MembershipModel.id.desc())
            .execution_options(populate_existing=True)
        )
        for model in result.scalars().all():
            membership = model.to_domain()
            if membership.is_current(now):
                return membership
        return None

    async def transition(
        self,
        membership_id: int,
        target: MembershipStatus,
        sources: Iterable[MembershipStatus],
        **values: Any,
    ) -> bool:
        """
        Move a membership to `target` if it is currently in one of `sources`.

        Extra column values (dates) are written in the same statement.

        Returns:
            True when a row changed
        """
        result = await self._session.execute(
            update(MembershipModel)
            .where(
                MembershipModel.id == membership_id,
                MembershipModel.status.in_([s.value for s in sources]),
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
