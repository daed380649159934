"""Internal service-to-service order endpoints.

Called by checkout and the referral service via service-role JWT,
not by frontend clients directly.
"""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import require_service_role
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.orders_service.schemas import (
    OrderCreate,
    OrderLineResponse,
    OrderLinesResponse,
    OrderResponse,
    SellerRevenueResponse,
)
from services.orders_service.services import lifecycle
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/internal", tags=["internal-orders"])


@router.post(
    "/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED
)
async def create_order(
    body: OrderCreate,
    service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Checkout hand-off: persist the order and notify its sellers."""
    return await lifecycle.create_order(db, body, created_by=service.user_id)


@router.get("/orders/{order_id}/lines", response_model=OrderLinesResponse)
async def get_order_lines(
    order_id: uuid.UUID,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    order = await lifecycle.get_order_lines(db, order_id)
    return OrderLinesResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        lines=[OrderLineResponse.model_validate(item) for item in order.items],
    )


@router.get("/sellers/{seller_id}/revenue", response_model=SellerRevenueResponse)
async def get_seller_revenue(
    seller_id: str,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    revenue, order_count = await lifecycle.seller_revenue(db, seller_id)
    return SellerRevenueResponse(
        seller_id=seller_id, revenue=revenue, order_count=order_count
    )
