"""Checkout domain module."""

from membership_checkout.features.checkout.domain.actors import (
    ActorContext,
    GuestActor,
    MemberActor,
)
from membership_checkout.features.checkout.domain.models import (
    CheckoutCommand,
    CheckoutResult,
    CheckoutStage,
    TransactionType,
    ValidatedCheckout,
)

__all__ = [
    "ActorContext",
    "GuestActor",
    "MemberActor",
    "CheckoutCommand",
    "CheckoutResult",
    "CheckoutStage",
    "TransactionType",
    "ValidatedCheckout",
]
