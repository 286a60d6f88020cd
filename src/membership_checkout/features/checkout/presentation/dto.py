"""Checkout DTOs for API requests/responses."""

from pydantic import BaseModel, ConfigDict, Field

from membership_checkout.features.checkout.domain.models import CheckoutResult
from membership_checkout.features.registrations.domain.enums import MembershipOperation


class GuestInfo(BaseModel):
    """Contact details of a guest registrant."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName", min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)


class EventCheckoutRequest(BaseModel):
    """
    Event checkout for a guest or a signed-in member.

    Any price sent by the client is ignored.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "offeringId": 12,
                "guest": {
                    "fullName": "Chan Tai Man",
                    "email": "taiman@example.com",
                    "phone": "+852 9123 4567",
                },
            }
        },
    )

    offering_id: int = Field(..., alias="offeringId", description="Event ID")
    tier_ref: int | None = Field(
        None, alias="tierRef", description="Membership level for member pricing"
    )
    guest: GuestInfo | None = None


class MemberEventCheckoutRequest(BaseModel):
    """Event checkout for a signed-in member."""

    model_config = ConfigDict(populate_by_name=True)

    offering_id: int = Field(..., alias="offeringId", description="Event ID")
    tier_ref: int | None = Field(None, alias="tierRef")


class MembershipCheckoutRequest(BaseModel):
    """Membership purchase, renewal, upgrade or downgrade."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"membershipLevelId": 2, "operationType": "UPGRADE"}},
    )

    membership_level_id: int = Field(..., alias="membershipLevelId")
    operation_type: MembershipOperation = Field(
        MembershipOperation.NEW, alias="operationType"
    )


class CheckoutResponse(BaseModel):
    """Outcome of a checkout attempt."""

    model_config = ConfigDict(populate_by_name=True)

    public_id: str = Field(..., alias="publicId")
    is_free: bool = Field(..., alias="isFree")
    redirect_url: str | None = Field(None, alias="redirectUrl")
    status: str
    order_id: str | None = Field(None, alias="orderId")
    order_number: str | None = Field(None, alias="orderNumber")

    @classmethod
    def from_result(cls, result: CheckoutResult) -> "CheckoutResponse":
        return cls(
            public_id=result.public_id,
            is_free=result.is_free,
            redirect_url=result.redirect_url,
            status=result.record.status.value,
            order_id=result.order.public_id if result.order else None,
            order_number=result.order.order_number if result.order else None,
        )


class MembershipVerifyResponse(BaseModel):
    """State of a membership checkout after returning from the gateway."""

    model_config = ConfigDict(populate_by_name=True)

    public_id: str = Field(..., alias="publicId")
    status: str
    order_id: str = Field(..., alias="orderId")
    order_status: str = Field(..., alias="orderStatus")
    start_date: str | None = Field(None, alias="startDate")
    end_date: str | None = Field(None, alias="endDate")
