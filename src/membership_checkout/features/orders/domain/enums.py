"""Order and payment domain enums."""

from enum import Enum


class OrderStatus(str, Enum):
    """Order status enum."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class OrderType(str, Enum):
    """What an order pays for."""

    EVENT = "EVENT"
    MEMBERSHIP_PURCHASE = "MEMBERSHIP_PURCHASE"
    MEMBERSHIP_RENEWAL = "MEMBERSHIP_RENEWAL"
    MEMBERSHIP_UPGRADE = "MEMBERSHIP_UPGRADE"
    MEMBERSHIP_DOWNGRADE = "MEMBERSHIP_DOWNGRADE"


class PaymentStatus(str, Enum):
    """Payment status enum."""

    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class PaymentProvider(str, Enum):
    """Payment providers.

    ADMIN is the sentinel for settlements that never touch a gateway.
    """

    STRIPE = "STRIPE"
    MOCK = "MOCK"
    ADMIN = "ADMIN"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PAID: frozenset({OrderStatus.REFUNDED}),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCEEDED, PaymentStatus.FAILED}),
}


def order_sources(target: OrderStatus) -> list[OrderStatus]:
    """Statuses an order may move to `target` from."""
    return [src for src, targets in ORDER_TRANSITIONS.items() if target in targets]


def payment_sources(target: PaymentStatus) -> list[PaymentStatus]:
    """Statuses a payment may move to `target` from."""
    return [src for src, targets in PAYMENT_TRANSITIONS.items() if target in targets]
