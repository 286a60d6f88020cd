"""Order management: listing, cancellation, refunds and session verification."""

from typing import List

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.domain.actors import MemberActor
from membership_checkout.features.checkout.domain.metadata import parse_record_ref
from membership_checkout.features.orders.application.ledger import OrderLedger
from membership_checkout.features.orders.domain.entities import Order
from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    PaymentProvider,
    PaymentStatus,
)
from membership_checkout.features.payments.application.ports import (
    GatewayEvent,
    GatewayEventKind,
    PaymentGatewayPort,
)
from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)
from membership_checkout.features.registrations.domain.entities import DomainRecord
from membership_checkout.features.webhooks.application.reconciler import (
    GatewayReconciler,
    ReconciliationOutcome,
)
from membership_checkout.shared.domain.exceptions import (
    ForbiddenError,
    GatewaySessionError,
    InvalidTransitionError,
    LedgerWriteError,
    OrderNotFoundError,
    ReconciliationError,
)

logger = structlog.get_logger(__name__)


class OrderService:
    """Member-facing operations on existing orders."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGatewayPort,
        reconciler: GatewayReconciler,
    ) -> None:
        self._session = session
        self._gateway = gateway
        self._reconciler = reconciler
        self._ledger = OrderLedger(session)
        self._factory = DomainRecordFactory(session)

    async def list_orders(
        self, actor: MemberActor, limit: int = 50, offset: int = 0
    ) -> List[Order]:
        return await self._ledger.list_orders_for_user(actor.user_id, limit, offset)

    async def get_order(self, actor: MemberActor, public_id: str) -> Order:
        """
        Get an order owned by the actor.

        Raises:
            OrderNotFoundError: Unknown order
            ForbiddenError: Someone else's order
        """
        order = await self._ledger.get_order_by_public_id(public_id)
        if order is None:
            raise OrderNotFoundError(public_id)
        if order.user_id != actor.user_id:
            raise ForbiddenError("You do not have access to this order")
        return order

    async def cancel_order(self, actor: MemberActor, public_id: str) -> Order:
        """
        Cancel a PENDING order.

        Expires the gateway session if one is open, fails the payment and
        releases the record.
        """
        order = await self.get_order(actor, public_id)
        if not order.can_be_cancelled():
            raise InvalidTransitionError(
                "Order", order.id, order.status.value, OrderStatus.CANCELLED.value
            )

        payment = order.latest_payment
        if payment is not None and payment.provider_ref:
            try:
                await self._gateway.expire_session(payment.provider_ref)
            except GatewaySessionError as exc:
                logger.warning(
                    "gateway_session_expire_failed", order_id=order.id, error=str(exc)
                )

        try:
            if payment is not None:
                await self._ledger.update_payment_status(
                    payment.id,
                    PaymentStatus.FAILED,
                    failure_reason="Cancelled by customer",
                )
            order = await self._ledger.update_order_status(order.id, OrderStatus.CANCELLED)
            await self._cancel_record(order)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise LedgerWriteError("cancel_order", str(exc)) from exc

        logger.info("order_cancelled", order_id=order.id)
        return await self._ledger.get_order(order.id)

    async def refund_order(self, actor: MemberActor, public_id: str) -> Order:
        """
        Refund a PAID order and cancel the record it settled.

        Administrative (free) settlements are refunded locally.
        """
        order = await self.get_order(actor, public_id)
        if not order.can_be_refunded():
            raise InvalidTransitionError(
                "Order", order.id, order.status.value, OrderStatus.REFUNDED.value
            )

        refund_id = None
        payment = order.latest_payment
        if payment is not None and payment.provider != PaymentProvider.ADMIN:
            if not payment.provider_ref:
                raise GatewaySessionError(
                    payment.provider.value, "Payment has no gateway reference"
                )
            result = await self._gateway.refund(payment.provider_ref)
            if not result.success:
                raise GatewaySessionError(
                    payment.provider.value, result.error_message or "Refund failed"
                )
            refund_id = result.refund_id
            logger.info("gateway_refund_created", order_id=order.id, refund_id=refund_id)

        try:
            order = await self._ledger.update_order_status(order.id, OrderStatus.REFUNDED)
            await self._cancel_record(order)
            await self._session.commit()
        except (SQLAlchemyError, LedgerWriteError) as exc:
            await self._session.rollback()
            # The gateway has already returned the money
            logger.error(
                "refund_not_recorded",
                order_id=order.id,
                refund_id=refund_id,
                error=str(exc),
            )
            if isinstance(exc, LedgerWriteError):
                raise
            raise LedgerWriteError("refund_order", str(exc)) from exc

        logger.info("order_refunded", order_id=order.id)
        return await self._ledger.get_order(order.id)

    async def verify_checkout_session(
        self, actor: MemberActor, session_id: str
    ) -> tuple[Order, DomainRecord]:
        """
        Sync an order with the gateway after the customer returns from checkout.

        A paid session runs the same path as a success webhook.
        """
        payment = await self._ledger.find_payment_by_provider_ref(session_id)
        if payment is None:
            raise OrderNotFoundError(session_id)
        order = await self._ledger.get_order(payment.order_id)
        if order.user_id != actor.user_id:
            raise ForbiddenError("You do not have access to this order")

        if payment.status == PaymentStatus.PENDING:
            session = await self._gateway.retrieve_session(session_id)
            if session.is_paid:
                outcome = await self._reconciler.reconcile(
                    GatewayEvent(
                        id=f"verify:{session_id}",
                        type="checkout.session.verified",
                        kind=GatewayEventKind.SUCCEEDED,
                        provider=payment.provider,
                        session_id=session_id,
                        metadata=session.metadata,
                        payment_intent=session.payment_intent,
                        payload=session.payload,
                    )
                )
                logger.info(
                    "checkout_session_verified",
                    session_id=session_id,
                    outcome=outcome.value,
                )
                if outcome == ReconciliationOutcome.NEEDS_REVIEW:
                    raise ReconciliationError(f"verify:{session_id}", "see review queue")

        order = await self._ledger.get_order(order.id)
        return order, await self._record_for(order)

    async def _record_for(self, order: Order) -> DomainRecord:
        ref = parse_record_ref(order.metadata)
        if ref is None:
            raise OrderNotFoundError(order.public_id)
        return await self._factory.get(ref.kind, ref.id)

    async def _cancel_record(self, order: Order) -> None:
        try:
            ref = parse_record_ref(order.metadata)
        except ValueError:
            ref = None
        if ref is None:
            logger.warning("order_without_record", order_id=order.id)
            return
        await self._factory.cancel(ref.kind, ref.id)
