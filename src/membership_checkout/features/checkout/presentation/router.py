"""Checkout API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query

from membership_checkout.features.checkout.application.coordinator import (
    CheckoutCoordinator,
)
from membership_checkout.features.checkout.domain.actors import GuestActor
from membership_checkout.features.checkout.domain.models import CheckoutCommand
from membership_checkout.features.checkout.presentation.dto import (
    CheckoutResponse,
    EventCheckoutRequest,
    MemberEventCheckoutRequest,
    MembershipCheckoutRequest,
    MembershipVerifyResponse,
)
from membership_checkout.features.offerings.domain.entities import OfferingKind
from membership_checkout.features.orders.application.service import OrderService
from membership_checkout.features.registrations.domain.entities import (
    GuestContact,
    Membership,
)
from membership_checkout.shared.domain.exceptions import ValidationError
from membership_checkout.shared.presentation.api_response import APIResponse
from membership_checkout.shared.presentation.dependencies import (
    AppSettings,
    CurrentActor,
    CurrentMember,
    get_coordinator,
    get_order_service,
)

router = APIRouter()

Coordinator = Annotated[CheckoutCoordinator, Depends(get_coordinator)]


@router.post(
    "/checkout",
    response_model=APIResponse[CheckoutResponse],
    status_code=201,
    summary="Event checkout",
    description="""
    Register a guest or a signed-in member for an event.

    - Free events are confirmed immediately and return a success URL
    - Paid events return a redirect URL to the hosted payment page
    - Guests must supply full name, email and phone
    """,
)
async def event_checkout(
    request: EventCheckoutRequest,
    actor: CurrentActor,
    coordinator: Coordinator,
    settings: AppSettings,
    locale: Annotated[str | None, Header()] = None,
) -> APIResponse[CheckoutResponse]:
    """Guest-or-member event checkout."""
    if actor is None:
        if request.guest is None:
            raise ValidationError("Sign in or provide guest details to register")
        actor = GuestActor(
            contact=GuestContact(
                full_name=request.guest.full_name.strip(),
                email=request.guest.email.strip(),
                phone=request.guest.phone.strip(),
            )
        )

    result = await coordinator.checkout(
        CheckoutCommand(
            offering_kind=OfferingKind.EVENT,
            offering_id=request.offering_id,
            actor=actor,
            tier_ref=request.tier_ref,
            locale=locale or settings.default_locale,
        )
    )
    return APIResponse.ok(
        data=CheckoutResponse.from_result(result),
        message="Registration confirmed" if result.is_free else "Checkout session created",
    )


@router.post(
    "/member/checkout",
    response_model=APIResponse[CheckoutResponse],
    status_code=201,
    summary="Member event checkout",
)
async def member_event_checkout(
    request: MemberEventCheckoutRequest,
    member: CurrentMember,
    coordinator: Coordinator,
    settings: AppSettings,
    locale: Annotated[str | None, Header()] = None,
) -> APIResponse[CheckoutResponse]:
    """Event checkout that requires a signed-in member."""
    result = await coordinator.checkout(
        CheckoutCommand(
            offering_kind=OfferingKind.EVENT,
            offering_id=request.offering_id,
            actor=member,
            tier_ref=request.tier_ref,
            locale=locale or settings.default_locale,
        )
    )
    return APIResponse.ok(
        data=CheckoutResponse.from_result(result),
        message="Registration confirmed" if result.is_free else "Checkout session created",
    )


@router.post(
    "/member/memberships/checkout",
    response_model=APIResponse[CheckoutResponse],
    status_code=201,
    summary="Membership checkout",
    description="""
    Buy, extend, upgrade or downgrade a membership.

    - `NEW` requires no active membership
    - `EXTEND` keeps the current level and adds its duration
    - `UPGRADE`/`DOWNGRADE` move to a higher/lower priority level
    """,
)
async def membership_checkout(
    request: MembershipCheckoutRequest,
    member: CurrentMember,
    coordinator: Coordinator,
    settings: AppSettings,
    locale: Annotated[str | None, Header()] = None,
) -> APIResponse[CheckoutResponse]:
    """Membership checkout for a signed-in member."""
    result = await coordinator.checkout(
        CheckoutCommand(
            offering_kind=OfferingKind.MEMBERSHIP,
            offering_id=request.membership_level_id,
            actor=member,
            operation=request.operation_type,
            locale=locale or settings.default_locale,
        )
    )
    return APIResponse.ok(
        data=CheckoutResponse.from_result(result),
        message="Membership activated" if result.is_free else "Checkout session created",
    )


@router.post(
    "/member/memberships/verify",
    response_model=APIResponse[MembershipVerifyResponse],
    summary="Verify membership payment",
    description="Sync a membership checkout with the gateway after the redirect back.",
)
async def verify_membership(
    member: CurrentMember,
    orders: Annotated[OrderService, Depends(get_order_service)],
    session_id: Annotated[str, Query(min_length=1)],
) -> APIResponse[MembershipVerifyResponse]:
    """Verify a membership checkout session."""
    order, record = await orders.verify_checkout_session(member, session_id)
    if not isinstance(record, Membership):
        raise ValidationError("Checkout session is not for a membership")
    return APIResponse.ok(
        data=MembershipVerifyResponse(
            public_id=record.public_id,
            status=record.status.value,
            order_id=order.public_id,
            order_status=order.status.value,
            start_date=record.start_date.isoformat() if record.start_date else None,
            end_date=record.end_date.isoformat() if record.end_date else None,
        )
    )
