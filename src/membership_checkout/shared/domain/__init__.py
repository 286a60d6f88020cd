"""Shared domain module - Exceptions and money helpers."""

from membership_checkout.shared.domain.exceptions import (
    AuthenticationRequiredError,
    CheckoutError,
    ForbiddenError,
    GatewaySessionError,
    InvalidTransitionError,
    LedgerWriteError,
    NotificationError,
    OrderNotFoundError,
    ReconciliationError,
    RecordNotFoundError,
    ValidationError,
    WebhookVerificationError,
)
from membership_checkout.shared.domain.money import to_minor_units, quantize

__all__ = [
    "AuthenticationRequiredError",
    "CheckoutError",
    "ForbiddenError",
    "GatewaySessionError",
    "InvalidTransitionError",
    "LedgerWriteError",
    "NotificationError",
    "OrderNotFoundError",
    "ReconciliationError",
    "RecordNotFoundError",
    "ValidationError",
    "WebhookVerificationError",
    "to_minor_units",
    "quantize",
]
