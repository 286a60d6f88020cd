"""Order API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from membership_checkout.features.orders.application.service import OrderService
from membership_checkout.features.orders.presentation.dto import (
    OrderListResponse,
    OrderResponse,
)
from membership_checkout.shared.presentation.api_response import APIResponse
from membership_checkout.shared.presentation.dependencies import (
    CurrentMember,
    get_order_service,
)

router = APIRouter()

Orders = Annotated[OrderService, Depends(get_order_service)]


@router.get(
    "",
    response_model=APIResponse[OrderListResponse],
    summary="List orders",
    description="Order history of the signed-in member, newest first.",
)
async def list_orders(
    member: CurrentMember,
    orders: Orders,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> APIResponse[OrderListResponse]:
    """List the member's orders."""
    items = await orders.list_orders(member, limit=limit, offset=offset)
    return APIResponse.ok(
        data=OrderListResponse(
            orders=[OrderResponse.from_entity(order) for order in items],
            limit=limit,
            offset=offset,
        )
    )


@router.get(
    "/{public_id}",
    response_model=APIResponse[OrderResponse],
    summary="Get order",
)
async def get_order(
    public_id: str, member: CurrentMember, orders: Orders
) -> APIResponse[OrderResponse]:
    """Get one of the member's orders."""
    order = await orders.get_order(member, public_id)
    return APIResponse.ok(data=OrderResponse.from_entity(order))


@router.post(
    "/{public_id}/cancel",
    response_model=APIResponse[OrderResponse],
    summary="Cancel order",
    description="Cancel a PENDING order and release its seat or membership.",
)
async def cancel_order(
    public_id: str, member: CurrentMember, orders: Orders
) -> APIResponse[OrderResponse]:
    """Cancel a pending order."""
    order = await orders.cancel_order(member, public_id)
    return APIResponse.ok(
        data=OrderResponse.from_entity(order), message="Order cancelled"
    )


@router.post(
    "/{public_id}/refund",
    response_model=APIResponse[OrderResponse],
    summary="Refund order",
    description="Refund a PAID order through the gateway and cancel its record.",
)
async def refund_order(
    public_id: str, member: CurrentMember, orders: Orders
) -> APIResponse[OrderResponse]:
    """Refund a paid order."""
    order = await orders.refund_order(member, public_id)
    return APIResponse.ok(
        data=OrderResponse.from_entity(order), message="Order refunded"
    )
