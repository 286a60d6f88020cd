"""Order and payment domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    OrderType,
    PaymentProvider,
    PaymentStatus,
)


@dataclass(frozen=True)
class PriceBreakdown:
    """How the gross amount of an order was reached."""

    base: Decimal
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, str]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "base": str(self.base),
            "tax": str(self.tax),
            "discount": str(self.discount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PriceBreakdown":
        """Build from a stored dictionary."""
        data = data or {}
        return cls(
            base=Decimal(str(data.get("base", "0"))),
            tax=Decimal(str(data.get("tax", "0"))),
            discount=Decimal(str(data.get("discount", "0"))),
        )


@dataclass
class Payment:
    """Payment domain entity."""

    id: int
    public_id: str
    order_id: int
    provider: PaymentProvider
    status: PaymentStatus
    amount: Decimal
    currency: str

    # Provider data
    provider_ref: str | None = None
    provider_payload: dict[str, Any] | None = None
    failure_reason: str | None = None

    # Timestamps
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_settled(self) -> bool:
        """Whether the payment reached a terminal status."""
        return self.status in (PaymentStatus.SUCCEEDED, PaymentStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "public_id": self.public_id,
            "order_id": self.order_id,
            "provider": self.provider.value,
            "status": self.status.value,
            "amount": str(self.amount),
            "currency": self.currency,
            "provider_ref": self.provider_ref,
            "failure_reason": self.failure_reason,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }


@dataclass
class Order:
    """Order domain entity."""

    id: int
    public_id: str
    order_number: str
    user_id: int
    type: OrderType
    status: OrderStatus
    gross_amount: Decimal
    currency: str
    breakdown: PriceBreakdown
    metadata: dict[str, Any] = field(default_factory=dict)

    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    payments: list[Payment] = field(default_factory=list)

    @property
    def latest_payment(self) -> Payment | None:
        """The most recent payment attempt."""
        return self.payments[-1] if self.payments else None

    def can_be_cancelled(self) -> bool:
        """Check if order can be cancelled."""
        return self.status == OrderStatus.PENDING

    def can_be_refunded(self) -> bool:
        """Check if order can be refunded."""
        return self.status == OrderStatus.PAID
