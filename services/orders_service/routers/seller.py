"""Seller-facing order, notification and commission endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_seller
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.models import CommissionStatus, NotificationStatus, OrderStatus
from services.orders_service.schemas import (
    AcceptOrderRequest,
    CommissionListResponse,
    CommissionResponse,
    CommissionSummaryResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    OrderResponse,
    SellerOrderListResponse,
    UpdateOrderStatusRequest,
)
from services.orders_service.services import commissions, lifecycle, notifications
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/seller", tags=["seller"])


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@router.get("/orders", response_model=SellerOrderListResponse)
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders that contain at least one of the caller's products."""
    orders, total = await lifecycle.list_seller_orders(
        db,
        current_user.effective_seller_id,
        status=status,
        page=page,
        limit=limit,
    )
    return SellerOrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/orders/accept", response_model=OrderResponse)
async def accept_order(
    body: AcceptOrderRequest,
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    order = await lifecycle.accept_order(
        db,
        body.order_id,
        current_user.effective_seller_id,
        notes=body.notes,
        estimated_processing_time=body.estimated_processing_time,
    )
    return order


@router.put("/orders/status", response_model=OrderResponse)
async def update_order_status(
    body: UpdateOrderStatusRequest,
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    order = await lifecycle.update_status(
        db,
        body.order_id,
        current_user.effective_seller_id,
        body.status,
        notes=body.notes,
        tracking_number=body.tracking_number,
        estimated_delivery_date=body.estimated_delivery_date,
    )
    return order


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@router.get("/notifications", response_model=NotificationListResponse)
async def list_my_notifications(
    status: Optional[NotificationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    items, total, unread = await notifications.list_seller_notifications(
        db,
        current_user.effective_seller_id,
        page=page,
        limit=limit,
        status=status,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread_count=unread,
        page=page,
        limit=limit,
    )


@router.put("/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    updated = await notifications.mark_all_as_read(db, current_user.effective_seller_id)
    return MarkAllReadResponse(updated=updated)


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    return await notifications.mark_notification_as_read(
        db, notification_id, current_user.effective_seller_id
    )


@router.put(
    "/notifications/{notification_id}/archive", response_model=NotificationResponse
)
async def archive_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    return await notifications.archive_notification(
        db, notification_id, current_user.effective_seller_id
    )


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------


@router.get("/commissions/summary", response_model=CommissionSummaryResponse)
async def my_commission_summary(
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    return await commissions.get_seller_commission_summary(
        db, current_user.effective_seller_id
    )


@router.get("/commissions", response_model=CommissionListResponse)
async def list_my_commissions(
    status: Optional[CommissionStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    items, total = await commissions.list_seller_commissions(
        db,
        current_user.effective_seller_id,
        status=status,
        page=page,
        limit=limit,
    )
    return CommissionListResponse(
        commissions=[CommissionResponse.model_validate(c) for c in items],
        total=total,
        page=page,
        limit=limit,
    )
