"""Offering infrastructure module."""

from membership_checkout.features.offerings.infrastructure.repository import (
    OfferingRepository,
)

__all__ = ["OfferingRepository"]
