"""Payment application ports."""

from membership_checkout.features.payments.application.ports.payment_gateway_port import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    GatewayEvent,
    GatewayEventKind,
    GatewaySession,
    LineItem,
    PaymentGatewayPort,
    RefundResult,
)

__all__ = [
    "CheckoutSessionRequest",
    "CheckoutSessionResult",
    "GatewayEvent",
    "GatewayEventKind",
    "GatewaySession",
    "LineItem",
    "PaymentGatewayPort",
    "RefundResult",
]
