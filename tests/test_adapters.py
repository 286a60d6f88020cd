"""Stripe and mock gateway adapters."""

import json
import time
from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe

from membership_checkout.features.orders.domain.enums import PaymentProvider
from membership_checkout.features.payments.application.ports import (
    CheckoutSessionRequest,
    GatewayEventKind,
    LineItem,
)
from membership_checkout.features.payments.infrastructure.adapters.mock_adapter import (
    MockGatewayAdapter,
)
from membership_checkout.features.payments.infrastructure.adapters.stripe_adapter import (
    StripeGatewayAdapter,
    stripe_event_to_gateway_event,
)
from membership_checkout.shared.domain.exceptions import (
    GatewaySessionError,
    WebhookVerificationError,
)

pytestmark = pytest.mark.anyio


def _request(amount="80.00"):
    return CheckoutSessionRequest(
        line_items=[
            LineItem(
                name="Menopause Wellness Talk",
                description="An evening with our clinicians",
                unit_amount=Decimal(amount),
                currency="hkd",
            )
        ],
        success_url="http://site.test/en/events/talk/register/success?registration=abc",
        cancel_url="http://site.test/en/events/talk?canceled=true&registration=abc",
        metadata={"record_kind": "event_registration", "record_id": "1"},
        customer_email="member@example.com",
    )


def _stripe_event(event_type, **session):
    obj = {"id": "cs_test_1", "object": "checkout.session", "metadata": {"record_id": "1"}}
    obj.update(session)
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


class TestStripeEventMapping:
    def test_paid_completion_succeeds(self):
        event = stripe_event_to_gateway_event(
            _stripe_event("checkout.session.completed", payment_status="paid")
        )

        assert event.kind == GatewayEventKind.SUCCEEDED
        assert event.provider == PaymentProvider.STRIPE
        assert event.session_id == "cs_test_1"
        assert event.metadata == {"record_id": "1"}

    def test_unpaid_completion_waits_for_async_payment(self):
        event = stripe_event_to_gateway_event(
            _stripe_event("checkout.session.completed", payment_status="unpaid")
        )

        assert event.kind == GatewayEventKind.IGNORED

    def test_expired_session_fails(self):
        event = stripe_event_to_gateway_event(_stripe_event("checkout.session.expired"))

        assert event.kind == GatewayEventKind.FAILED
        assert event.failure_reason == "Checkout session expired"

    def test_unrelated_event_is_ignored(self):
        event = stripe_event_to_gateway_event(
            {"id": "evt_2", "type": "customer.created", "data": {"object": {"object": "customer"}}}
        )

        assert event.kind == GatewayEventKind.IGNORED
        assert event.session_id is None


class TestStripeAdapter:
    @pytest.fixture
    def adapter(self, settings):
        settings.stripe_secret_key = "sk_test_123"
        settings.stripe_webhook_secret = "whsec_123"
        return StripeGatewayAdapter(settings)

    async def test_create_session_uses_minor_units(self, adapter, monkeypatch):
        captured = {}

        def fake_create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(
                id="cs_test_1",
                url="https://checkout.stripe.com/c/pay/cs_test_1",
                status="open",
                expires_at=1700000000,
            )

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        result = await adapter.create_checkout_session(_request())

        price_data = captured["line_items"][0]["price_data"]
        assert price_data["unit_amount"] == 8000
        assert price_data["currency"] == "hkd"
        assert price_data["product_data"]["description"] == "An evening with our clinicians"
        assert captured["mode"] == "payment"
        assert captured["metadata"] == {"record_kind": "event_registration", "record_id": "1"}
        assert result.session_id == "cs_test_1"
        assert result.url.endswith("cs_test_1")

    async def test_create_session_error(self, adapter, monkeypatch):
        def fake_create(**kwargs):
            raise stripe.APIConnectionError("Network error")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        with pytest.raises(GatewaySessionError):
            await adapter.create_checkout_session(_request())

    async def test_expire_finished_session(self, adapter, monkeypatch):
        def fake_expire(session_id):
            raise stripe.InvalidRequestError("Session is not open", "session")

        monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

        assert await adapter.expire_session("cs_test_1") is False

    async def test_refund_uses_payment_intent(self, adapter, monkeypatch):
        created = {}

        monkeypatch.setattr(
            stripe.checkout.Session,
            "retrieve",
            lambda session_id: SimpleNamespace(payment_intent="pi_1", currency="hkd"),
        )

        def fake_refund(**kwargs):
            created.update(kwargs)
            return SimpleNamespace(id="re_1")

        monkeypatch.setattr(stripe.Refund, "create", fake_refund)

        result = await adapter.refund("cs_test_1", Decimal("40.00"))

        assert result.success
        assert result.refund_id == "re_1"
        assert created == {"payment_intent": "pi_1", "amount": 4000}

    def test_parse_webhook(self, adapter, monkeypatch):
        payload = json.dumps(
            _stripe_event("checkout.session.completed", payment_status="paid")
        ).encode()
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda *args: None)

        event = adapter.parse_webhook(payload, "t=1,v1=abc")

        assert event.id == "evt_1"
        assert event.kind == GatewayEventKind.SUCCEEDED

    def test_parse_webhook_bad_signature(self, adapter, monkeypatch):
        def reject(*args):
            raise stripe.SignatureVerificationError("No signatures found", "t=1,v1=abc")

        monkeypatch.setattr(stripe.Webhook, "construct_event", reject)

        with pytest.raises(WebhookVerificationError):
            adapter.parse_webhook(b"{}", "t=1,v1=abc")


class TestMockAdapter:
    @pytest.fixture
    def adapter(self, settings):
        return MockGatewayAdapter(settings)

    async def test_checkout_url_points_at_site(self, adapter):
        result = await adapter.create_checkout_session(_request())

        assert result.url.startswith("http://site.test/payment/mock-checkout?")
        assert "amount=80.00" in result.url

    async def test_retrieve_completes_open_session(self, adapter):
        result = await adapter.create_checkout_session(_request())

        session = await adapter.retrieve_session(result.session_id)

        assert session.is_paid
        assert session.metadata["record_id"] == "1"

    async def test_retrieve_unknown_session(self, adapter):
        with pytest.raises(GatewaySessionError):
            await adapter.retrieve_session("mock_cs_missing")

    async def test_refund_requires_paid_session(self, adapter):
        result = await adapter.create_checkout_session(_request())
        await adapter.expire_session(result.session_id)

        refund = await adapter.refund(result.session_id)

        assert not refund.success

    def test_signed_webhook(self, adapter):
        body = json.dumps(
            {
                "id": "mock_evt_1",
                "type": "payment.succeeded",
                "data": {"session_id": "mock_cs_1", "metadata": {"record_id": 1}},
            }
        )

        event = adapter.parse_webhook(body.encode(), adapter.generate_webhook_signature(body))

        assert event.id == "mock_evt_1"
        assert event.kind == GatewayEventKind.SUCCEEDED
        assert event.provider == PaymentProvider.MOCK
        assert event.metadata == {"record_id": "1"}

    def test_tampered_webhook(self, adapter):
        signature = adapter.generate_webhook_signature('{"type": "payment.failed"}')

        with pytest.raises(WebhookVerificationError):
            adapter.parse_webhook(b'{"type": "payment.succeeded"}', signature)

    def test_stale_signature(self, adapter):
        body = '{"type": "payment.succeeded"}'
        signature = adapter.generate_webhook_signature(body, int(time.time()) - 3600)

        assert not adapter.verify_signature(body.encode(), signature)
