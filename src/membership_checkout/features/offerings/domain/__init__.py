"""Offering domain module."""

from membership_checkout.features.offerings.domain.entities import (
    Event,
    EventPriceTier,
    EventStatus,
    MembershipLevel,
    Offering,
    OfferingKind,
)

__all__ = [
    "Event",
    "EventPriceTier",
    "EventStatus",
    "MembershipLevel",
    "Offering",
    "OfferingKind",
]
