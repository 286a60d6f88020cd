"""Order DTOs for API responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from membership_checkout.features.orders.domain.entities import Order, Payment


class PaymentResponse(BaseModel):
    """A payment attempt, without internal or gateway ids."""

    model_config = ConfigDict(populate_by_name=True)

    public_id: str = Field(..., alias="publicId")
    provider: str
    status: str
    amount: str
    currency: str
    failure_reason: str | None = Field(None, alias="failureReason")
    processed_at: datetime | None = Field(None, alias="processedAt")

    @classmethod
    def from_entity(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            public_id=payment.public_id,
            provider=payment.provider.value,
            status=payment.status.value,
            amount=str(payment.amount),
            currency=payment.currency,
            failure_reason=payment.failure_reason,
            processed_at=payment.processed_at,
        )


class OrderResponse(BaseModel):
    """Order as shown to its owner."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "publicId": "b5Vq1k2XlT9cF0aP3mRz8w",
                "orderNumber": "ORD-20260301-7H2K9Q",
                "type": "EVENT",
                "status": "PAID",
                "grossAmount": "180.00",
                "currency": "hkd",
                "breakdown": {"base": "200.00", "tax": "0", "discount": "20.00"},
                "recordPublicId": "Q3d7s0FZrKp4yN2bVx1wLg",
            }
        },
    )

    public_id: str = Field(..., alias="publicId")
    order_number: str = Field(..., alias="orderNumber")
    type: str
    status: str
    gross_amount: str = Field(..., alias="grossAmount")
    currency: str
    breakdown: dict[str, str]
    record_public_id: str | None = Field(None, alias="recordPublicId")
    paid_at: datetime | None = Field(None, alias="paidAt")
    created_at: datetime | None = Field(None, alias="createdAt")
    payment: PaymentResponse | None = None

    @classmethod
    def from_entity(cls, order: Order) -> "OrderResponse":
        latest = order.latest_payment
        return cls(
            public_id=order.public_id,
            order_number=order.order_number,
            type=order.type.value,
            status=order.status.value,
            gross_amount=str(order.gross_amount),
            currency=order.currency,
            breakdown=order.breakdown.to_dict(),
            record_public_id=order.metadata.get("record_public_id"),
            paid_at=order.paid_at,
            created_at=order.created_at,
            payment=PaymentResponse.from_entity(latest) if latest else None,
        )


class OrderListResponse(BaseModel):
    """Paginated order history."""

    orders: list[OrderResponse]
    limit: int
    offset: int
