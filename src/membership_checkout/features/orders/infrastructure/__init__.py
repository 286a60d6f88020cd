"""Order infrastructure module."""

from membership_checkout.features.orders.infrastructure.repository import (
    OrderRepository,
    PaymentRepository,
)

__all__ = ["OrderRepository", "PaymentRepository"]
