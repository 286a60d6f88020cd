"""Order and payment repositories.

Writes flush only; the ledger or the calling service commits.
"""

from typing import Any, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.orders.domain.entities import Order, Payment
from membership_checkout.features.orders.domain.enums import OrderStatus, PaymentStatus
from membership_checkout.shared.infrastructure.database.models import (
    OrderModel,
    PaymentModel,
)


class OrderRepository:
    """Order persistence using async SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, model: OrderModel) -> OrderModel:
        """Stage a new order and flush it to obtain its ID."""
        self._session.add(model)
        await self._session.flush()
        return model

    async def _payments_for(self, order_id: int) -> list[PaymentModel]:
        result = await self._session.execute(
            select(PaymentModel)
            .where(PaymentModel.order_id == order_id)
            .order_by(PaymentModel.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _one(self, *criteria) -> Optional[Order]:
        result = await self._session.execute(
            select(OrderModel)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return model.to_domain(await self._payments_for(model.id))

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """Get an order with its payments by internal ID."""
        return await self._one(OrderModel.id == order_id)

    async def get_by_public_id(self, public_id: str) -> Optional[Order]:
        """Get an order with its payments by public ID."""
        return await self._one(OrderModel.public_id == public_id)

    async def list_for_user(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> List[Order]:
        """
        List a member's orders, newest first.

        Args:
            user_id: Owner of the orders
            limit: Maximum number of orders
            offset: Number of orders to skip
        """
        result = await self._session.execute(
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [
            model.to_domain(await self._payments_for(model.id))
            for model in result.scalars().all()
        ]

    async def transition(
        self,
        order_id: int,
        target: OrderStatus,
        sources: Iterable[OrderStatus],
        **values: Any,
    ) -> bool:
        """Conditionally move an order to `target`. True when a row changed."""
        result = await self._session.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.status.in_([s.value for s in sources]),
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class PaymentRepository:
    """Payment persistence using async SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, model: PaymentModel) -> PaymentModel:
        """Stage a new payment and flush it to obtain its ID."""
        self._session.add(model)
        await self._session.flush()
        return model

    async def _one(self, *criteria) -> Optional[Payment]:
        result = await self._session.execute(
            select(PaymentModel)
            .where(*criteria)
            .order_by(PaymentModel.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_domain() if model else None

    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """Get a payment by its internal ID."""
        return await self._one(PaymentModel.id == payment_id)

    async def get_by_provider_ref(self, provider_ref: str) -> Optional[Payment]:
        """Get the payment of a gateway checkout session."""
        return await self._one(PaymentModel.provider_ref == provider_ref)

    async def transition(
        self,
        payment_id: int,
        target: PaymentStatus,
        sources: Iterable[PaymentStatus],
        **values: Any,
    ) -> bool:
        """Conditionally move a payment to `target`. True when a row changed."""
        result = await self._session.execute(
            update(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status.in_([s.value for s in sources]),
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_fields(self, payment_id: int, **values: Any) -> bool:
        """Write non-status columns. True when the payment exists."""
        result = await self._session.execute(
            update(PaymentModel)
            .where(PaymentModel.id == payment_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
