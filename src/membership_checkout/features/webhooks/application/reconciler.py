"""Gateway reconciliation.

Maps verified gateway events back onto payments, orders and domain records.
Two guards keep it idempotent: the processed-event table drops replays of
the same event id, and conditional status updates make a second settlement
of the same record a no-op that sends no second confirmation.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.domain.metadata import (
    parse_int,
    parse_record_ref,
)
from membership_checkout.features.notifications.application.notifier import (
    ConfirmationNotifier,
)
from membership_checkout.features.orders.application.ledger import OrderLedger
from membership_checkout.features.orders.domain.entities import Order, Payment
from membership_checkout.features.orders.domain.enums import OrderStatus, PaymentStatus
from membership_checkout.features.payments.application.ports import (
    GatewayEvent,
    GatewayEventKind,
)
from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)
from membership_checkout.features.registrations.domain.entities import DomainRecord
from membership_checkout.features.registrations.domain.enums import (
    MembershipStatus,
    RegistrationStatus,
)
from membership_checkout.features.webhooks.infrastructure.repository import (
    ProcessedEventRepository,
)
from membership_checkout.shared.domain.clock import utcnow
from membership_checkout.shared.domain.exceptions import (
    InvalidTransitionError,
    ReconciliationError,
    RecordNotFoundError,
)

logger = structlog.get_logger(__name__)

# Statuses a record can be in after a successful payment
SETTLED_STATUSES = frozenset(
    {
        RegistrationStatus.PAID,
        RegistrationStatus.ATTENDED,
        MembershipStatus.ACTIVE,
        MembershipStatus.SUPERSEDED,
        MembershipStatus.EXPIRED,
    }
)


class ReconciliationOutcome(str, Enum):
    """What happened to a gateway event."""

    APPLIED = "APPLIED"
    DUPLICATE = "DUPLICATE"
    IGNORED = "IGNORED"
    NEEDS_REVIEW = "NEEDS_REVIEW"


@dataclass
class _Target:
    record: DomainRecord
    order: Order | None
    payment: Payment | None


class GatewayReconciler:
    """Applies gateway events to the ledger and domain records."""

    def __init__(self, session: AsyncSession, notifier: ConfirmationNotifier) -> None:
        self._session = session
        self._notifier = notifier
        self._ledger = OrderLedger(session)
        self._factory = DomainRecordFactory(session)
        self._processed = ProcessedEventRepository(session)

    async def reconcile(self, event: GatewayEvent) -> ReconciliationOutcome:
        """
        Apply one gateway event. Never raises for bad events.

        Returns:
            How the event was handled
        """
        log = logger.bind(event_id=event.id, event_type=event.type)

        if await self._processed.exists(event.id):
            log.info("gateway_event_duplicate")
            return ReconciliationOutcome.DUPLICATE

        if event.kind == GatewayEventKind.IGNORED:
            return await self._finish(event, ReconciliationOutcome.IGNORED, log)

        try:
            target = await self._resolve(event)
            if event.kind == GatewayEventKind.SUCCEEDED:
                activated = await self._apply_success(event, target)
            else:
                await self._apply_failure(event, target)
                activated = False
        except (ReconciliationError, InvalidTransitionError) as exc:
            await self._session.rollback()
            log.error("gateway_event_needs_review", error=str(exc))
            return await self._finish(
                event, ReconciliationOutcome.NEEDS_REVIEW, log, error=str(exc)
            )

        outcome = await self._finish(event, ReconciliationOutcome.APPLIED, log)
        if outcome == ReconciliationOutcome.APPLIED and activated:
            await self._notifier.notify(
                await self._factory.get(target.record.kind, target.record.id)
            )
        return outcome

    async def _finish(
        self,
        event: GatewayEvent,
        outcome: ReconciliationOutcome,
        log,
        error: str | None = None,
    ) -> ReconciliationOutcome:
        """Record the event and commit everything staged for it."""
        try:
            await self._processed.add(
                event_id=event.id,
                provider=event.provider.value,
                event_type=event.type,
                outcome=outcome.value,
                needs_review=outcome == ReconciliationOutcome.NEEDS_REVIEW,
                error=error,
            )
            await self._session.commit()
        except IntegrityError:
            # A concurrent delivery of the same event committed first
            await self._session.rollback()
            log.info("gateway_event_duplicate")
            return ReconciliationOutcome.DUPLICATE

        log.info("gateway_event_processed", outcome=outcome.value)
        return outcome

    async def _resolve(self, event: GatewayEvent) -> _Target:
        try:
            ref = parse_record_ref(event.metadata)
            payment_id = parse_int(event.metadata, "payment_id")
            order_id = parse_int(event.metadata, "order_id")
        except ValueError as exc:
            raise ReconciliationError(event.id, f"malformed metadata: {exc}") from exc

        payment = None
        if payment_id is not None:
            payment = await self._ledger.get_payment(payment_id)
            if payment is None:
                raise ReconciliationError(event.id, f"unknown payment {payment_id}")
        elif event.session_id:
            payment = await self._ledger.find_payment_by_provider_ref(event.session_id)

        order = None
        if payment is not None:
            order = await self._ledger.get_order(payment.order_id)
            if order_id is not None and order_id != payment.order_id:
                raise ReconciliationError(
                    event.id, f"payment {payment.id} does not belong to order {order_id}"
                )
        elif order_id is not None:
            raise ReconciliationError(event.id, f"order {order_id} has no matching payment")

        if order is not None:
            try:
                order_ref = parse_record_ref(order.metadata)
            except ValueError:
                order_ref = None
            if ref is None:
                ref = order_ref
            elif order_ref is not None and order_ref != ref:
                raise ReconciliationError(
                    event.id, f"order {order.id} settles a different record"
                )

        if ref is None:
            raise ReconciliationError(event.id, "metadata does not reference a record")

        try:
            record = await self._factory.get(ref.kind, ref.id)
        except RecordNotFoundError as exc:
            raise ReconciliationError(event.id, str(exc)) from exc

        # Member records always carry an order; guest registrations never do
        if order is None and record.user_id is not None:
            raise ReconciliationError(
                event.id, f"{ref.kind.value} {ref.id} has no order to settle"
            )

        return _Target(record=record, order=order, payment=payment)

    async def _apply_success(self, event: GatewayEvent, target: _Target) -> bool:
        now = utcnow()
        if target.payment is not None:
            extra = {"provider_payload": event.payload}
            if event.session_id:
                extra["provider_ref"] = event.session_id
            await self._ledger.update_payment_status(
                target.payment.id, PaymentStatus.SUCCEEDED, processed_at=now, **extra
            )
            await self._ledger.update_order_status(
                target.order.id, OrderStatus.PAID, paid_at=now
            )
        activated = await self._factory.activate(target.record.kind, target.record.id)
        if not activated:
            record = await self._factory.get(target.record.kind, target.record.id)
            if record.status not in SETTLED_STATUSES:
                raise ReconciliationError(
                    event.id,
                    f"payment succeeded for {record.kind.value} {record.id} "
                    f"in status {record.status.value}",
                )
        return activated

    async def _apply_failure(self, event: GatewayEvent, target: _Target) -> None:
        if _already_closed(target):
            # Closed earlier by a customer cancellation or a previous failure
            return
        if target.payment is not None:
            await self._ledger.update_payment_status(
                target.payment.id,
                PaymentStatus.FAILED,
                provider_payload=event.payload,
                failure_reason=event.failure_reason,
            )
            await self._ledger.update_order_status(target.order.id, OrderStatus.FAILED)
        # A settled record is never cancelled by a failure event
        await self._factory.cancel(target.record.kind, target.record.id, pending_only=True)


def _already_closed(target: _Target) -> bool:
    return (
        target.order is not None
        and target.order.status in (OrderStatus.CANCELLED, OrderStatus.FAILED)
        and target.payment is not None
        and target.payment.status == PaymentStatus.FAILED
    )
