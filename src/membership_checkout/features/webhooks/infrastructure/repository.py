"""Processed gateway event repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.shared.infrastructure.database.models import (
    ProcessedGatewayEventModel,
)


class ProcessedEventRepository:
    """Idempotency keys for gateway webhooks."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, event_id: str) -> bool:
        """Check whether an event was already handled."""
        result = await self._session.execute(
            select(ProcessedGatewayEventModel.id).where(
                ProcessedGatewayEventModel.event_id == event_id
            )
        )
        return result.scalar_one_or_none() is not None

    async def add(
        self,
        *,
        event_id: str,
        provider: str,
        event_type: str,
        outcome: str,
        needs_review: bool = False,
        error: str | None = None,
    ) -> None:
        """Stage the event row. A duplicate surfaces as IntegrityError on flush."""
        self._session.add(
            ProcessedGatewayEventModel(
                event_id=event_id,
                provider=provider,
                event_type=event_type,
                outcome=outcome,
                needs_review=needs_review,
                error=error,
            )
        )
        await self._session.flush()

    async def list_needing_review(self, limit: int = 100) -> list[ProcessedGatewayEventModel]:
        """Events flagged for manual review, newest first."""
        result = await self._session.execute(
            select(ProcessedGatewayEventModel)
            .where(ProcessedGatewayEventModel.needs_review.is_(True))
            .order_by(ProcessedGatewayEventModel.received_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
