"""Order domain entities and value objects."""

from membership_checkout.features.orders.domain.entities import (
    Order,
    Payment,
    PriceBreakdown,
)
from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    OrderType,
    PaymentProvider,
    PaymentStatus,
)

__all__ = [
    "Order",
    "Payment",
    "PriceBreakdown",
    "OrderStatus",
    "OrderType",
    "PaymentProvider",
    "PaymentStatus",
]
