"""Registration API router."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)
from membership_checkout.features.registrations.domain.enums import RecordKind
from membership_checkout.shared.presentation.api_response import APIResponse
from membership_checkout.shared.presentation.dependencies import DbSession

router = APIRouter()


class RegistrationResponse(BaseModel):
    """Registration state shown on the success page. No contact details."""

    model_config = ConfigDict(populate_by_name=True)

    public_id: str = Field(..., alias="publicId")
    event_id: int = Field(..., alias="eventId")
    status: str
    price: str
    currency: str
    is_guest: bool = Field(..., alias="isGuest")
    registered_at: datetime | None = Field(None, alias="registeredAt")


@router.get(
    "/{public_id}",
    response_model=APIResponse[RegistrationResponse],
    summary="Get registration",
    description="Look up an event registration by its unguessable public ID.",
)
async def get_registration(
    public_id: str, session: DbSession
) -> APIResponse[RegistrationResponse]:
    """Get a registration by public ID."""
    registration = await DomainRecordFactory(session).get_by_public_id(
        RecordKind.EVENT_REGISTRATION, public_id
    )
    return APIResponse.ok(
        data=RegistrationResponse(
            public_id=registration.public_id,
            event_id=registration.event_id,
            status=registration.status.value,
            price=str(registration.price),
            currency=registration.currency,
            is_guest=registration.is_guest,
            registered_at=registration.registered_at,
        )
    )
