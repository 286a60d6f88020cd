"""Offering repository for database operations."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.offerings.domain.entities import (
    Event,
    MembershipLevel,
)
from membership_checkout.shared.infrastructure.database.models import (
    EventModel,
    EventPriceTierModel,
    MembershipLevelModel,
)


class OfferingRepository:
    """Read access to events, their price tiers and membership levels."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_event(self, event_id: int, *, lock: bool = False) -> Optional[Event]:
        """
        Get an event with its price tiers.

        Args:
            event_id: ID of the event
            lock: Take a row lock on the event until the transaction ends

        Returns:
            Event if found, None otherwise
        """
        stmt = select(EventModel).where(EventModel.id == event_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self._session.execute(
            stmt.execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None

        tiers = await self._session.execute(
            select(EventPriceTierModel)
            .where(EventPriceTierModel.event_id == event_id)
            .order_by(EventPriceTierModel.id)
        )
        return model.to_domain(list(tiers.scalars().all()))

    async def get_membership_level(self, level_id: int) -> Optional[MembershipLevel]:
        """Get a membership level by its ID."""
        result = await self._session.execute(
            select(MembershipLevelModel).where(MembershipLevelModel.id == level_id)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None
