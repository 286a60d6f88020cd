"""Webhook reconciliation and idempotency."""

import pytest

from membership_checkout.features.checkout.application.coordinator import (
    CheckoutCoordinator,
)
from membership_checkout.features.orders.application.ledger import OrderLedger
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
from membership_checkout.features.registrations.infrastructure.repository import (
    RegistrationRepository,
)
from membership_checkout.features.webhooks.application.reconciler import (
    GatewayReconciler,
    ReconciliationOutcome,
)
from membership_checkout.features.webhooks.infrastructure.repository import (
    ProcessedEventRepository,
)

from helpers import PAID_EVENT_ID, PLAIN_MEMBER, SMALL_EVENT_ID, event_command, guest

pytestmark = pytest.mark.anyio


@pytest.fixture
def reconciler(session, notifier):
    return GatewayReconciler(session, notifier)


@pytest.fixture
async def member_checkout(session, gateway, notifier, settings):
    coordinator = CheckoutCoordinator(session, gateway, notifier, settings)
    result = await coordinator.checkout(event_command(PAID_EVENT_ID, PLAIN_MEMBER))
    return result, gateway.requests[-1].metadata


def _event(
    event_id,
    metadata,
    kind=GatewayEventKind.SUCCEEDED,
    session_id="cs_test_1",
    event_type="checkout.session.completed",
):
    return GatewayEvent(
        id=event_id,
        type=event_type,
        kind=kind,
        provider=PaymentProvider.STRIPE,
        session_id=session_id,
        metadata=dict(metadata),
        failure_reason="card_declined" if kind == GatewayEventKind.FAILED else None,
        payload={"id": session_id},
    )


async def _registration(session, record_id):
    return await DomainRecordFactory(session).get(RecordKind.EVENT_REGISTRATION, record_id)


class TestSuccess:
    async def test_replayed_event_settles_once(
        self, session, reconciler, member_checkout, queue
    ):
        result, metadata = member_checkout

        first = await reconciler.reconcile(_event("evt_1", metadata))
        second = await reconciler.reconcile(_event("evt_1", metadata))

        assert first == ReconciliationOutcome.APPLIED
        assert second == ReconciliationOutcome.DUPLICATE
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.PAID
        assert len(queue.messages) == 1

    async def test_second_event_for_same_payment_sends_no_second_confirmation(
        self, reconciler, member_checkout, queue
    ):
        _, metadata = member_checkout

        await reconciler.reconcile(_event("evt_1", metadata))
        outcome = await reconciler.reconcile(_event("evt_2", metadata))

        assert outcome == ReconciliationOutcome.APPLIED
        assert len(queue.messages) == 1

    async def test_settles_order_and_payment(self, session, reconciler, member_checkout):
        result, metadata = member_checkout

        await reconciler.reconcile(_event("evt_1", metadata))

        order = await OrderLedger(session).get_order(result.order.id)
        assert order.status == OrderStatus.PAID
        assert order.paid_at is not None
        assert order.latest_payment.status == PaymentStatus.SUCCEEDED
        assert order.latest_payment.provider_ref == "cs_test_1"

    async def test_resolves_by_session_id_without_metadata(
        self, session, reconciler, member_checkout
    ):
        result, _ = member_checkout

        outcome = await reconciler.reconcile(_event("evt_1", {}))

        assert outcome == ReconciliationOutcome.APPLIED
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.PAID

    async def test_guest_registration_settles_from_metadata(
        self, session, gateway, notifier, settings, reconciler, queue
    ):
        coordinator = CheckoutCoordinator(session, gateway, notifier, settings)
        result = await coordinator.checkout(event_command(PAID_EVENT_ID, guest()))

        outcome = await reconciler.reconcile(
            _event("evt_guest", gateway.requests[-1].metadata)
        )

        assert outcome == ReconciliationOutcome.APPLIED
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.PAID
        assert [m.recipient for m in queue.messages] == ["guest@example.com"]


class TestFailure:
    async def test_failure_releases_the_seat(self, session, gateway, notifier, settings, reconciler):
        coordinator = CheckoutCoordinator(session, gateway, notifier, settings)
        result = await coordinator.checkout(event_command(SMALL_EVENT_ID, PLAIN_MEMBER))

        outcome = await reconciler.reconcile(
            _event("evt_fail", gateway.requests[-1].metadata, kind=GatewayEventKind.FAILED)
        )

        order = await OrderLedger(session).get_order(result.order.id)
        assert outcome == ReconciliationOutcome.APPLIED
        assert order.status == OrderStatus.FAILED
        assert order.latest_payment.status == PaymentStatus.FAILED
        assert order.latest_payment.failure_reason == "card_declined"
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.CANCELLED
        assert await RegistrationRepository(session).count_live(SMALL_EVENT_ID) == 0

    async def test_failure_after_success_needs_review(
        self, session, reconciler, member_checkout
    ):
        result, metadata = member_checkout
        await reconciler.reconcile(_event("evt_ok", metadata))

        outcome = await reconciler.reconcile(
            _event("evt_late_fail", metadata, kind=GatewayEventKind.FAILED)
        )

        assert outcome == ReconciliationOutcome.NEEDS_REVIEW
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.PAID

    async def test_expiry_after_customer_cancellation_is_applied(
        self, session, gateway, reconciler, member_checkout
    ):
        result, metadata = member_checkout
        await OrderService(session, gateway, reconciler).cancel_order(
            PLAIN_MEMBER, result.order.public_id
        )

        outcome = await reconciler.reconcile(
            _event(
                "evt_expired",
                metadata,
                kind=GatewayEventKind.FAILED,
                event_type="checkout.session.expired",
            )
        )

        order = await OrderLedger(session).get_order(result.order.id)
        assert outcome == ReconciliationOutcome.APPLIED
        assert order.status == OrderStatus.CANCELLED
        assert order.latest_payment.failure_reason == "Cancelled by customer"
        assert await ProcessedEventRepository(session).list_needing_review() == []

    async def test_success_after_guest_failure_needs_review(
        self, session, gateway, notifier, settings, reconciler, queue
    ):
        coordinator = CheckoutCoordinator(session, gateway, notifier, settings)
        result = await coordinator.checkout(event_command(PAID_EVENT_ID, guest()))
        metadata = gateway.requests[-1].metadata
        await reconciler.reconcile(
            _event("evt_guest_fail", metadata, kind=GatewayEventKind.FAILED)
        )

        outcome = await reconciler.reconcile(_event("evt_guest_paid", metadata))

        flagged = await ProcessedEventRepository(session).list_needing_review()
        assert outcome == ReconciliationOutcome.NEEDS_REVIEW
        assert [row.event_id for row in flagged] == ["evt_guest_paid"]
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.CANCELLED
        assert queue.messages == []


class TestUnmatched:
    async def test_ignored_event_is_recorded(self, reconciler):
        event = _event("evt_other", {}, kind=GatewayEventKind.IGNORED)

        assert await reconciler.reconcile(event) == ReconciliationOutcome.IGNORED
        assert await reconciler.reconcile(event) == ReconciliationOutcome.DUPLICATE

    async def test_unknown_session_needs_review(self, session, reconciler):
        outcome = await reconciler.reconcile(_event("evt_lost", {}, session_id="cs_unknown"))

        flagged = await ProcessedEventRepository(session).list_needing_review()
        assert outcome == ReconciliationOutcome.NEEDS_REVIEW
        assert [row.event_id for row in flagged] == ["evt_lost"]
        assert "does not reference a record" in flagged[0].error

    async def test_malformed_metadata_needs_review(self, reconciler):
        outcome = await reconciler.reconcile(
            _event("evt_bad", {"record_kind": "event_registration", "record_id": "abc"})
        )

        assert outcome == ReconciliationOutcome.NEEDS_REVIEW

    async def test_mismatched_order_needs_review(self, session, reconciler, member_checkout):
        result, metadata = member_checkout
        forged = dict(metadata, order_id=str(result.order.id + 100))

        outcome = await reconciler.reconcile(_event("evt_forged", forged))

        assert outcome == ReconciliationOutcome.NEEDS_REVIEW
        assert (await _registration(session, result.record.id)).status == RegistrationStatus.PENDING

    async def test_member_record_without_order_needs_review(
        self, reconciler, member_checkout
    ):
        result, _ = member_checkout
        metadata = {"record_kind": "event_registration", "record_id": str(result.record.id)}

        outcome = await reconciler.reconcile(
            _event("evt_orphan", metadata, session_id=None)
        )

        assert outcome == ReconciliationOutcome.NEEDS_REVIEW
