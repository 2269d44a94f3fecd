"""
Checkout and order API endpoints.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import OrderStatus, User
from ..schemas.common import PaginationInfo
from ..schemas.order import (
    CheckoutStepRequest,
    CheckoutStepResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    QuoteRequest,
    QuoteResponse,
)
from ..services.checkout import checkout_step_errors
from ..services.order_service import OrderService
from ..utils.dependencies import get_current_user


router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    current_user: User = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
) -> Any:
    """
    Place an order for one event.

    Availability is enforced atomically; if any ticket type (or the event's
    overall capacity) cannot cover the request, nothing is sold and the
    request fails with 409.
    """
    order = await order_service.create_order(current_user, order_data)
    return OrderResponse.model_validate(order)


@router.post("/quote", response_model=QuoteResponse)
async def quote_order(
    quote_request: QuoteRequest,
    order_service: OrderService = Depends(get_order_service)
) -> Any:
    """Price a ticket selection against current availability without buying it."""
    return await order_service.quote(quote_request)


@router.post("/validate-step", response_model=CheckoutStepResponse)
async def validate_checkout_step(step_request: CheckoutStepRequest) -> Any:
    errors = checkout_step_errors(
        step_request.step,
        total_quantity=step_request.total_quantity,
        buyer=step_request.buyer_profile,
        billing=step_request.billing_address,
        payment=step_request.payment,
    )
    return CheckoutStepResponse(step=step_request.step, valid=not errors, errors=errors)


@router.get("/", response_model=OrderListResponse)
async def list_my_orders(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
) -> Any:
    orders, total = await order_service.list_orders(current_user, page, size, status_filter)
    pagination = PaginationInfo.build(total, page, size)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        **pagination.model_dump()
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
) -> Any:
    order = await order_service.get_order(order_id, current_user)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
) -> Any:
    """
    Cancel an order and release its tickets.

    Not possible once cancelled or after the event has started.
    """
    order = await order_service.cancel_order(order_id, current_user)
    return OrderResponse.model_validate(order)
