"""Checkout coordinator.

VALIDATING -> RECORD_CREATED -> LEDGER_CREATED -> FREE_SETTLED
                                               -> GATEWAY_SESSION_CREATED

Every write is committed before the next step starts, so the gateway
session only ever references ids that already exist.
"""

from decimal import Decimal

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.application.validator import CheckoutValidator
from membership_checkout.features.checkout.domain.actors import MemberActor
from membership_checkout.features.checkout.domain.metadata import (
    gateway_metadata,
    order_metadata,
)
from membership_checkout.features.checkout.domain.models import (
    CheckoutCommand,
    CheckoutResult,
    CheckoutStage,
    ValidatedCheckout,
)
from membership_checkout.features.notifications.application.notifier import (
    ConfirmationNotifier,
)
from membership_checkout.features.offerings.domain.entities import Event, MembershipLevel
from membership_checkout.features.orders.application.ledger import OrderLedger
from membership_checkout.features.orders.domain.entities import (
    Order,
    Payment,
    PriceBreakdown,
)
from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    PaymentProvider,
    PaymentStatus,
)
from membership_checkout.features.payments.application.ports import (
    CheckoutSessionRequest,
    LineItem,
    PaymentGatewayPort,
)
from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)
from membership_checkout.features.registrations.domain.entities import DomainRecord
from membership_checkout.features.registrations.domain.enums import (
    MembershipStatus,
    RecordKind,
    RegistrationStatus,
)
from membership_checkout.shared.core.settings import Settings
from membership_checkout.shared.domain.clock import utcnow
from membership_checkout.shared.domain.exceptions import (
    GatewaySessionError,
    LedgerWriteError,
)

logger = structlog.get_logger(__name__)

# Stripe substitutes the session id into success URLs
SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


class CheckoutCoordinator:
    """Runs one checkout attempt for a member or a guest."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGatewayPort,
        notifier: ConfirmationNotifier,
        settings: Settings,
    ) -> None:
        self._session = session
        self._gateway = gateway
        self._notifier = notifier
        self._base_url = settings.app_base_url.rstrip("/")
        self._validator = CheckoutValidator(session, settings.currency)
        self._factory = DomainRecordFactory(session)
        self._ledger = OrderLedger(session)

    async def checkout(self, command: CheckoutCommand) -> CheckoutResult:
        """
        Validate, create the record and ledger entries, then settle or
        hand off to the gateway.

        Raises:
            ValidationError: Not eligible; nothing was written
            LedgerWriteError: A write failed
            GatewaySessionError: The gateway refused; records stay PENDING
        """
        log = logger.bind(
            offering=f"{command.offering_kind.value}:{command.offering_id}",
            actor=command.actor.label,
        )
        log.info("checkout_stage", stage=CheckoutStage.VALIDATING.value)
        validated = await self._validator.validate(command)

        if validated.is_free:
            return await self._settle_free(validated, command.locale, log)
        return await self._open_gateway_session(validated, command.locale, log)

    async def _settle_free(
        self, validated: ValidatedCheckout, locale: str, log
    ) -> CheckoutResult:
        record = await self._factory.create(
            validated, validated.actor, _settled_status(validated.record_kind)
        )
        log = log.bind(record_id=record.id)
        log.info("checkout_stage", stage=CheckoutStage.RECORD_CREATED.value)

        order: Order | None = None
        payment: Payment | None = None
        actor = validated.actor
        if isinstance(actor, MemberActor):
            order, payment = await self._create_order(
                validated, record, actor, PaymentProvider.ADMIN
            )
            log.info(
                "checkout_stage",
                stage=CheckoutStage.LEDGER_CREATED.value,
                order_id=order.id,
                payment_id=payment.id,
            )
            now = utcnow()
            try:
                order = await self._ledger.update_order_status(
                    order.id, OrderStatus.PAID, paid_at=now
                )
                payment = await self._ledger.update_payment_status(
                    payment.id, PaymentStatus.SUCCEEDED, processed_at=now
                )
                await self._session.commit()
            except SQLAlchemyError as exc:
                await self._session.rollback()
                raise LedgerWriteError("settle_free_order", str(exc)) from exc

        log.info("checkout_stage", stage=CheckoutStage.FREE_SETTLED.value)
        await self._notifier.notify(record)

        return CheckoutResult(
            record=record,
            is_free=True,
            redirect_url=self._success_url(validated, record, locale, gateway=False),
            order=order,
            payment=payment,
        )

    async def _open_gateway_session(
        self, validated: ValidatedCheckout, locale: str, log
    ) -> CheckoutResult:
        record = await self._factory.create(
            validated, validated.actor, _pending_status(validated.record_kind)
        )
        log = log.bind(record_id=record.id)
        log.info("checkout_stage", stage=CheckoutStage.RECORD_CREATED.value)

        order: Order | None = None
        payment: Payment | None = None
        actor = validated.actor
        if isinstance(actor, MemberActor):
            order, payment = await self._create_order(
                validated, record, actor, self._gateway.provider
            )
            log = log.bind(order_id=order.id, payment_id=payment.id)
            log.info("checkout_stage", stage=CheckoutStage.LEDGER_CREATED.value)

        request = CheckoutSessionRequest(
            line_items=[_line_item(validated)],
            success_url=self._success_url(validated, record, locale, gateway=True),
            cancel_url=self._cancel_url(validated, record, locale),
            metadata=gateway_metadata(validated, record, order, payment),
            customer_email=validated.actor.email,
        )

        try:
            session = await self._gateway.create_checkout_session(request)
        except GatewaySessionError as exc:
            log.error("gateway_session_failed", error=str(exc))
            raise

        if payment is not None:
            try:
                await self._ledger.attach_gateway_session(
                    payment.id, session.session_id, session.payload
                )
            except LedgerWriteError as exc:
                # Reconciliation still matches on metadata
                log.warning("gateway_session_not_stored", error=str(exc))

        log.info(
            "checkout_stage",
            stage=CheckoutStage.GATEWAY_SESSION_CREATED.value,
            session_id=session.session_id,
        )
        return CheckoutResult(
            record=record,
            is_free=False,
            redirect_url=session.url,
            order=order,
            payment=payment,
        )

    async def _create_order(
        self,
        validated: ValidatedCheckout,
        record: DomainRecord,
        member: MemberActor,
        provider: PaymentProvider,
    ) -> tuple[Order, Payment]:
        return await self._ledger.create_order(
            user_id=member.user_id,
            order_type=validated.order_type,
            gross_amount=validated.price,
            currency=validated.currency,
            breakdown=PriceBreakdown(
                base=validated.base_price,
                tax=Decimal("0"),
                discount=validated.discount,
            ),
            metadata=order_metadata(validated, record),
            provider=provider,
        )

    def _prefix(self, locale: str) -> str:
        return f"{self._base_url}/{locale}" if locale else self._base_url

    def _success_url(
        self,
        validated: ValidatedCheckout,
        record: DomainRecord,
        locale: str,
        gateway: bool,
    ) -> str:
        prefix = self._prefix(locale)
        match validated.offering:
            case Event(slug=slug):
                return f"{prefix}/events/{slug}/register/success?registration={record.public_id}"
            case MembershipLevel():
                url = f"{prefix}/member/membership/success?membership={record.public_id}"
                if not gateway:
                    return url
                return f"{url}&session_id={SESSION_ID_PLACEHOLDER}"

    def _cancel_url(
        self, validated: ValidatedCheckout, record: DomainRecord, locale: str
    ) -> str:
        prefix = self._prefix(locale)
        match validated.offering:
            case Event(slug=slug):
                return f"{prefix}/events/{slug}?canceled=true&registration={record.public_id}"
            case MembershipLevel():
                return f"{prefix}/member/membership?canceled=true&membership={record.public_id}"


def _line_item(validated: ValidatedCheckout) -> LineItem:
    match validated.offering:
        case Event() as event:
            return LineItem(
                name=event.title,
                description=event.short_description,
                image_url=event.image_url,
                unit_amount=validated.price,
                currency=validated.currency,
            )
        case MembershipLevel() as level:
            return LineItem(
                name=level.title,
                description=level.description,
                unit_amount=validated.price,
                currency=validated.currency,
            )


def _settled_status(kind: RecordKind) -> RegistrationStatus | MembershipStatus:
    if kind == RecordKind.EVENT_REGISTRATION:
        return RegistrationStatus.PAID
    return MembershipStatus.ACTIVE


def _pending_status(kind: RecordKind) -> RegistrationStatus | MembershipStatus:
    if kind == RecordKind.EVENT_REGISTRATION:
        return RegistrationStatus.PENDING
    return MembershipStatus.PENDING

