"""Order/payment ledger.

Creates order+payment pairs atomically and owns every status change on them.
Status changes are conditional updates that only flush; the caller decides
when the surrounding unit of work commits.
"""

import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.orders.domain.entities import (
    Order,
    Payment,
    PriceBreakdown,
)
from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    OrderType,
    PaymentProvider,
    PaymentStatus,
    order_sources,
    payment_sources,
)
from membership_checkout.features.orders.infrastructure.repository import (
    OrderRepository,
    PaymentRepository,
)
from membership_checkout.shared.domain.clock import new_public_id, utcnow
from membership_checkout.shared.domain.exceptions import (
    InvalidTransitionError,
    LedgerWriteError,
    OrderNotFoundError,
)
from membership_checkout.shared.infrastructure.database.models import (
    OrderModel,
    PaymentModel,
)

logger = structlog.get_logger(__name__)

_UNSET: Any = object()


def generate_order_number(now: datetime | None = None) -> str:
    """Human-readable order number, e.g. ORD-20250114-3FA9C1."""
    now = now or utcnow()
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderLedger:
    """Order and payment bookkeeping for one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._orders = OrderRepository(session)
        self._payments = PaymentRepository(session)

    async def create_order(
        self,
        *,
        user_id: int,
        order_type: OrderType,
        gross_amount: Decimal,
        currency: str,
        breakdown: PriceBreakdown,
        metadata: dict[str, Any],
        provider: PaymentProvider,
    ) -> tuple[Order, Payment]:
        """
        Create a PENDING order and its PENDING payment in one commit.

        Raises:
            LedgerWriteError: Nothing was persisted
        """
        try:
            order_model = await self._orders.add(
                OrderModel(
                    public_id=new_public_id(),
                    order_number=generate_order_number(),
                    user_id=user_id,
                    type=order_type.value,
                    status=OrderStatus.PENDING.value,
                    gross_amount=gross_amount,
                    currency=currency,
                    breakdown=breakdown.to_dict(),
                    order_metadata=metadata,
                )
            )
            payment_model = await self._payments.add(
                PaymentModel(
                    public_id=new_public_id(),
                    order_id=order_model.id,
                    provider=provider.value,
                    status=PaymentStatus.PENDING.value,
                    amount=gross_amount,
                    currency=currency,
                )
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("order_create_failed", user_id=user_id, error=str(exc))
            raise LedgerWriteError("create_order", str(exc)) from exc

        payment = payment_model.to_domain()
        order = order_model.to_domain([payment_model])
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            payment_id=payment.id,
            provider=provider.value,
            amount=str(gross_amount),
        )
        return order, payment

    async def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        paid_at: datetime | None = None,
    ) -> Order:
        """
        Move an order along its lifecycle.

        Re-applying the current status is a no-op. `paid_at` is only written
        by the transition into PAID.

        Raises:
            OrderNotFoundError: Unknown order
            InvalidTransitionError: The lifecycle forbids the move
            LedgerWriteError: The update failed
        """
        current = await self._orders.get_by_id(order_id)
        if current is None:
            raise OrderNotFoundError(str(order_id))
        if current.status == status:
            return current

        values: dict[str, Any] = {}
        if status == OrderStatus.PAID:
            values["paid_at"] = paid_at or utcnow()

        try:
            changed = await self._orders.transition(
                order_id, status, order_sources(status), **values
            )
        except SQLAlchemyError as exc:
            raise LedgerWriteError("update_order_status", str(exc)) from exc

        latest = await self._orders.get_by_id(order_id)
        if not changed and latest.status != status:
            raise InvalidTransitionError(
                "Order", order_id, latest.status.value, status.value
            )
        if changed:
            logger.info("order_status_changed", order_id=order_id, status=status.value)
        return latest

    async def update_payment_status(
        self,
        payment_id: int,
        status: PaymentStatus,
        *,
        processed_at: datetime | None = None,
        provider_ref: str | None = _UNSET,
        provider_payload: dict[str, Any] | None = _UNSET,
        failure_reason: str | None = _UNSET,
    ) -> Payment:
        """
        Move a payment along its lifecycle, writing gateway data with it.

        Raises:
            LedgerWriteError: Unknown payment or failed update
            InvalidTransitionError: The lifecycle forbids the move
        """
        current = await self._payments.get_by_id(payment_id)
        if current is None:
            raise LedgerWriteError("update_payment_status", f"payment {payment_id} not found")
        if current.status == status:
            return current

        values: dict[str, Any] = {"processed_at": processed_at or utcnow()}
        if provider_ref is not _UNSET:
            values["provider_ref"] = provider_ref
        if provider_payload is not _UNSET:
            values["provider_payload"] = provider_payload
        if failure_reason is not _UNSET:
            values["failure_reason"] = failure_reason

        try:
            changed = await self._payments.transition(
                payment_id, status, payment_sources(status), **values
            )
        except SQLAlchemyError as exc:
            raise LedgerWriteError("update_payment_status", str(exc)) from exc

        latest = await self._payments.get_by_id(payment_id)
        if not changed and latest.status != status:
            raise InvalidTransitionError(
                "Payment", payment_id, latest.status.value, status.value
            )
        if changed:
            logger.info(
                "payment_status_changed", payment_id=payment_id, status=status.value
            )
        return latest

    async def attach_gateway_session(
        self, payment_id: int, session_id: str, payload: dict[str, Any]
    ) -> None:
        """Store the gateway session reference on a payment and commit."""
        try:
            await self._payments.update_fields(
                payment_id, provider_ref=session_id, provider_payload=payload
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise LedgerWriteError("attach_gateway_session", str(exc)) from exc

    async def get_order(self, order_id: int) -> Optional[Order]:
        return await self._orders.get_by_id(order_id)

    async def get_order_by_public_id(self, public_id: str) -> Optional[Order]:
        return await self._orders.get_by_public_id(public_id)

    async def list_orders_for_user(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> List[Order]:
        return await self._orders.list_for_user(user_id, limit=limit, offset=offset)

    async def get_payment(self, payment_id: int) -> Optional[Payment]:
        return await self._payments.get_by_id(payment_id)

    async def find_payment_by_provider_ref(self, provider_ref: str) -> Optional[Payment]:
        return await self._payments.get_by_provider_ref(provider_ref)
