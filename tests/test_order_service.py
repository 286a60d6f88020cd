"""Order listing, cancellation and refunds."""

import pytest
from sqlalchemy.exc import OperationalError
from structlog.testing import capture_logs

from membership_checkout.features.checkout.application.coordinator import (
    CheckoutCoordinator,
)
from membership_checkout.features.orders.application.service import OrderService
from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    PaymentProvider,
    PaymentStatus,
)
from membership_checkout.features.payments.application.ports import (
    GatewayEvent,
    GatewayEventKind,
)
from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)
from membership_checkout.features.registrations.domain.enums import (
    RecordKind,
    RegistrationStatus,
)
from membership_checkout.features.webhooks.application.reconciler import (
    GatewayReconciler,
)
from membership_checkout.shared.domain.exceptions import (
    ForbiddenError,
    GatewaySessionError,
    InvalidTransitionError,
    LedgerWriteError,
    OrderNotFoundError,
)

from helpers import (
    FREE_EVENT_ID,
    OTHER_MEMBER,
    PAID_EVENT_ID,
    PLAIN_MEMBER,
    event_command,
)

pytestmark = pytest.mark.anyio


@pytest.fixture
def coordinator(session, gateway, notifier, settings):
    return CheckoutCoordinator(session, gateway, notifier, settings)


@pytest.fixture
def service(session, gateway, notifier):
    return OrderService(session, gateway, GatewayReconciler(session, notifier))


async def _paid_order(session, coordinator, gateway, notifier):
    result = await coordinator.checkout(event_command(PAID_EVENT_ID, PLAIN_MEMBER))
    await GatewayReconciler(session, notifier).reconcile(
        GatewayEvent(
            id="evt_paid",
            type="checkout.session.completed",
            kind=GatewayEventKind.SUCCEEDED,
            provider=PaymentProvider.STRIPE,
            session_id="cs_test_1",
            metadata=gateway.requests[-1].metadata,
        )
    )
    return result


async def _registration_status(session, record_id):
    record = await DomainRecordFactory(session).get(RecordKind.EVENT_REGISTRATION, record_id)
    return record.status


class TestAccess:
    async def test_list_only_own_orders(self, coordinator, service):
        await coordinator.checkout(event_command(PAID_EVENT_ID, PLAIN_MEMBER))

        assert len(await service.list_orders(PLAIN_MEMBER)) == 1
        assert await service.list_orders(OTHER_MEMBER) == []

    async def test_other_members_order_is_forbidden(self, coordinator, service):
        result = await coordinator.checkout(event_command(PAID_EVENT_ID, PLAIN_MEMBER))

        with pytest.raises(ForbiddenError):
            await service.get_order(OTHER_MEMBER, result.order.public_id)

    async def test_unknown_order(self, service):
        with pytest.raises(OrderNotFoundError):
            await service.get_order(PLAIN_MEMBER, "missing")


class TestCancel:
    async def test_cancel_pending_order(self, session, coordinator, service, gateway):
        result = await coordinator.checkout(event_command(PAID_EVENT_ID, PLAIN_MEMBER))

        order = await service.cancel_order(PLAIN_MEMBER, result.order.public_id)

        assert order.status == OrderStatus.CANCELLED
        assert order.latest_payment.status == PaymentStatus.FAILED
        assert order.latest_payment.failure_reason == "Cancelled by customer"
        assert gateway.expired == ["cs_test_1"]
        assert await _registration_status(session, result.record.id) == RegistrationStatus.CANCELLED

    async def test_cannot_cancel_paid_order(
        self, session, coordinator, service, gateway, notifier
    ):
        result = await _paid_order(session, coordinator, gateway, notifier)

        with pytest.raises(InvalidTransitionError):
            await service.cancel_order(PLAIN_MEMBER, result.order.public_id)


class TestRefund:
    async def test_refund_paid_order(self, session, coordinator, service, gateway, notifier):
        result = await _paid_order(session, coordinator, gateway, notifier)

        order = await service.refund_order(PLAIN_MEMBER, result.order.public_id)

        assert order.status == OrderStatus.REFUNDED
        assert gateway.refunds == ["cs_test_1"]
        assert await _registration_status(session, result.record.id) == RegistrationStatus.CANCELLED

    async def test_admin_settlement_refunds_locally(self, coordinator, service, gateway):
        result = await coordinator.checkout(event_command(FREE_EVENT_ID, PLAIN_MEMBER))

        order = await service.refund_order(PLAIN_MEMBER, result.order.public_id)

        assert order.status == OrderStatus.REFUNDED
        assert gateway.refunds == []

    async def test_gateway_refusal_keeps_order_paid(
        self, session, coordinator, service, gateway, notifier
    ):
        result = await _paid_order(session, coordinator, gateway, notifier)
        gateway.fail_refund = True

        with pytest.raises(GatewaySessionError):
            await service.refund_order(PLAIN_MEMBER, result.order.public_id)

        order = await service.get_order(PLAIN_MEMBER, result.order.public_id)
        assert order.status == OrderStatus.PAID

    async def test_unrecorded_refund_logs_refund_id(
        self, session, coordinator, service, gateway, notifier, monkeypatch
    ):
        result = await _paid_order(session, coordinator, gateway, notifier)

        async def broken_commit():
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "commit", broken_commit)

        with capture_logs() as logs:
            with pytest.raises(LedgerWriteError):
                await service.refund_order(PLAIN_MEMBER, result.order.public_id)

        unrecorded = [entry for entry in logs if entry["event"] == "refund_not_recorded"]
        assert gateway.refunds == ["cs_test_1"]
        assert unrecorded[0]["refund_id"] == "re_cs_test_1"
        assert unrecorded[0]["order_id"] == result.order.id

    async def test_cannot_refund_pending_order(self, coordinator, service):
        result = await coordinator.checkout(event_command(PAID_EVENT_ID, PLAIN_MEMBER))

        with pytest.raises(InvalidTransitionError):
            await service.refund_order(PLAIN_MEMBER, result.order.public_id)
