"""User lookups for resolving actors."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.domain.actors import MemberActor
from membership_checkout.shared.infrastructure.database.models import UserModel


class UserRepository:
    """Read-only access to accounts owned by the auth system."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_member(self, user_id: int) -> Optional[MemberActor]:
        """Resolve a user ID to a member actor."""
        result = await self._session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None
