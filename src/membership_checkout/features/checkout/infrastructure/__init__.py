"""Checkout infrastructure module."""

from membership_checkout.features.checkout.infrastructure.repository import UserRepository

__all__ = ["UserRepository"]
