"""Stripe Checkout gateway adapter."""

import json
from decimal import Decimal
from typing import Any

import stripe
import structlog

from membership_checkout.features.orders.domain.enums import PaymentProvider
from membership_checkout.features.payments.application.ports import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    GatewayEvent,
    GatewayEventKind,
    GatewaySession,
    PaymentGatewayPort,
    RefundResult,
)
from membership_checkout.shared.core.settings import Settings, get_settings
from membership_checkout.shared.domain.exceptions import (
    GatewaySessionError,
    WebhookVerificationError,
)
from membership_checkout.shared.domain.money import to_minor_units

logger = structlog.get_logger(__name__)

# Event types with a fixed meaning; checkout.session.completed depends on payment_status
STRIPE_EVENT_KINDS = {
    "checkout.session.async_payment_succeeded": GatewayEventKind.SUCCEEDED,
    "checkout.session.async_payment_failed": GatewayEventKind.FAILED,
    "checkout.session.expired": GatewayEventKind.FAILED,
}


def stripe_event_to_gateway_event(event: dict[str, Any]) -> GatewayEvent:
    """Normalise a decoded Stripe event body."""
    event_type = event.get("type", "")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        paid = obj.get("payment_status") in ("paid", "no_payment_required")
        # Delayed payment methods settle through async_payment_* later
        kind = GatewayEventKind.SUCCEEDED if paid else GatewayEventKind.IGNORED
    else:
        kind = STRIPE_EVENT_KINDS.get(event_type, GatewayEventKind.IGNORED)

    failure_reason = None
    if kind == GatewayEventKind.FAILED:
        failure_reason = (
            "Checkout session expired"
            if event_type == "checkout.session.expired"
            else "Payment failed"
        )

    is_session = obj.get("object") == "checkout.session"
    return GatewayEvent(
        id=event.get("id", ""),
        type=event_type,
        kind=kind,
        provider=PaymentProvider.STRIPE,
        session_id=obj.get("id") if is_session else None,
        metadata={k: str(v) for k, v in (obj.get("metadata") or {}).items()},
        payment_intent=obj.get("payment_intent"),
        failure_reason=failure_reason,
        payload=obj,
    )


class StripeGatewayAdapter(PaymentGatewayPort):
    """
    Stripe payment gateway adapter.

    Integrates with Stripe Checkout for payment processing.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        stripe.api_key = self._settings.stripe_secret_key

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.STRIPE

    async def create_checkout_session(
        self, request: CheckoutSessionRequest
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout Session.

        Returns a checkout URL for redirecting the user.
        """
        line_items = []
        for item in request.line_items:
            product_data: dict[str, Any] = {"name": item.name}
            if item.description:
                product_data["description"] = item.description
            if item.image_url:
                product_data["images"] = [item.image_url]
            line_items.append(
                {
                    "price_data": {
                        "currency": item.currency.lower(),
                        # Stripe uses the smallest currency unit
                        "unit_amount": to_minor_units(item.unit_amount, item.currency),
                        "product_data": product_data,
                    },
                    "quantity": item.quantity,
                }
            )

        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                line_items=line_items,
                mode="payment",
                success_url=request.success_url,
                cancel_url=request.cancel_url,
                customer_email=request.customer_email,
                metadata=request.metadata,
            )
        except stripe.StripeError as e:
            logger.error("stripe_session_create_failed", error=str(e))
            raise GatewaySessionError("stripe", str(e)) from e

        return CheckoutSessionResult(
            session_id=session.id,
            url=session.url,
            payload={
                "session_id": session.id,
                "url": session.url,
                "status": getattr(session, "status", None),
                "expires_at": getattr(session, "expires_at", None),
            },
        )

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        """Retrieve a Checkout Session."""
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            raise GatewaySessionError("stripe", str(e)) from e

        return GatewaySession(
            session_id=session.id,
            status=session.status or "open",
            payment_status=session.payment_status or "unpaid",
            metadata={k: str(v) for k, v in (session.metadata or {}).items()},
            payment_intent=session.payment_intent,
            payload={
                "session_id": session.id,
                "status": session.status,
                "payment_status": session.payment_status,
                "payment_intent": session.payment_intent,
            },
        )

    async def expire_session(self, session_id: str) -> bool:
        """
        Expire a Stripe Checkout Session.

        Note: Only open sessions can be expired.
        """
        try:
            stripe.checkout.Session.expire(session_id)
            return True
        except stripe.InvalidRequestError:
            # Session may already be completed or expired
            return False
        except stripe.StripeError as e:
            raise GatewaySessionError("stripe", str(e)) from e

    async def refund(
        self, session_id: str, amount: Decimal | None = None
    ) -> RefundResult:
        """
        Refund a Stripe payment.

        Requires the Payment Intent ID from the completed session.
        """
        try:
            session = stripe.checkout.Session.retrieve(session_id)
            payment_intent_id = session.payment_intent

            if not payment_intent_id:
                return RefundResult(
                    success=False,
                    error_message="No payment intent found for this session",
                )

            refund_params: dict[str, Any] = {"payment_intent": payment_intent_id}
            if amount is not None:
                refund_params["amount"] = to_minor_units(amount, session.currency or "")

            refund = stripe.Refund.create(**refund_params)
            return RefundResult(success=True, refund_id=refund.id)

        except stripe.StripeError as e:
            return RefundResult(success=False, error_message=str(e))

    def parse_webhook(self, payload: bytes, signature: str) -> GatewayEvent:
        """
        Verify a Stripe webhook and normalise it.

        Uses the Stripe-Signature header format.
        """
        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self._settings.stripe_webhook_secret,
            )
            event = json.loads(payload)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError("Invalid signature") from e
        except ValueError as e:
            raise WebhookVerificationError("Invalid payload") from e

        return stripe_event_to_gateway_event(event)
