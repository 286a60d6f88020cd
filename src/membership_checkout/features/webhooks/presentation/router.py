"""Webhook API router - Receives payment events from the gateway."""

import json
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, Request

from membership_checkout.features.orders.domain.enums import PaymentProvider
from membership_checkout.features.payments.application.ports import PaymentGatewayPort
from membership_checkout.features.payments.infrastructure.adapters.mock_adapter import (
    MockGatewayAdapter,
)
from membership_checkout.features.webhooks.application.reconciler import (
    GatewayReconciler,
)
from membership_checkout.shared.domain.exceptions import WebhookVerificationError
from membership_checkout.shared.presentation.api_response import APIResponse
from membership_checkout.shared.presentation.dependencies import (
    get_gateway,
    get_reconciler,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

Gateway = Annotated[PaymentGatewayPort, Depends(get_gateway)]
Reconciler = Annotated[GatewayReconciler, Depends(get_reconciler)]


async def _handle(
    request: Request,
    gateway: PaymentGatewayPort,
    reconciler: GatewayReconciler,
    signature: str,
) -> APIResponse[dict[str, str]]:
    payload = await request.body()
    event = gateway.parse_webhook(payload, signature)
    logger.info(
        "gateway_webhook_received",
        provider=event.provider.value,
        event_id=event.id,
        event_type=event.type,
    )
    outcome = await reconciler.reconcile(event)
    # Acknowledge everything that verified; review happens out of band
    return APIResponse.ok(
        data={"received": "true", "eventId": event.id, "outcome": outcome.value}
    )


@router.post(
    "/stripe",
    response_model=APIResponse[dict[str, str]],
    summary="Stripe Webhook",
    description="""
    Endpoint for receiving webhooks from Stripe.

    - Validates signature using `Stripe-Signature` header
    - Settles or fails the order and its registration or membership
    - Replays of the same event are acknowledged and ignored

    **Important**: Configure this URL in Stripe Dashboard.
    """,
)
async def stripe_webhook(
    request: Request,
    gateway: Gateway,
    reconciler: Reconciler,
    stripe_signature: Annotated[str, Header(alias="Stripe-Signature")],
) -> APIResponse[dict[str, str]]:
    """Handle Stripe webhooks."""
    if gateway.provider != PaymentProvider.STRIPE:
        raise WebhookVerificationError("Stripe gateway is not enabled")
    return await _handle(request, gateway, reconciler, stripe_signature)


@router.post(
    "/mock",
    response_model=APIResponse[dict[str, str]],
    summary="Mock Webhook",
    description="""
    Endpoint for simulating gateway webhooks in development.

    Header required: `X-Webhook-Signature` with format `t=<timestamp>,v1=<signature>`
    Body: `{"id", "type": "payment.succeeded" | "payment.failed", "data": {"session_id", "metadata"}}`
    """,
)
async def mock_webhook(
    request: Request,
    gateway: Gateway,
    reconciler: Reconciler,
    webhook_signature: Annotated[str, Header(alias="X-Webhook-Signature")],
) -> APIResponse[dict[str, str]]:
    """Handle mock webhooks."""
    if not isinstance(gateway, MockGatewayAdapter):
        raise WebhookVerificationError("Mock gateway is not enabled")
    return await _handle(request, gateway, reconciler, webhook_signature)


@router.post(
    "/test/generate-signature",
    summary="Generate webhook signature (Testing)",
    description="Generate a valid mock webhook signature for testing purposes.",
    tags=["Testing"],
)
async def generate_test_signature(
    payload: dict[str, Any], gateway: Gateway
) -> APIResponse[dict[str, str]]:
    """Generate a test webhook signature."""
    if not isinstance(gateway, MockGatewayAdapter):
        raise WebhookVerificationError(
            "Signature generation only available for mock provider"
        )
    payload_str = json.dumps(payload)
    return APIResponse.ok(
        data={
            "payload": payload_str,
            "signature": gateway.generate_webhook_signature(payload_str),
            "headerName": "X-Webhook-Signature",
        }
    )
