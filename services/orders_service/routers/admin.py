"""Admin endpoints for commission payouts and order audits."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.schemas import (
    CancelCommissionRequest,
    CommissionResponse,
    MarkCommissionPaidRequest,
    OrderHistoryAuditResponse,
    OrderStatusHistoryResponse,
    ReconcileResponse,
)
from services.orders_service.services import commissions, lifecycle
from services.orders_service.services.transitions import replay_history
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin-orders"])


@router.post("/commissions/reconcile", response_model=ReconcileResponse)
async def reconcile_commissions(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Backfill commissions for delivered orders that are missing them."""
    logger.info("Commission reconciliation requested by %s", current_user.user_id)
    return await commissions.reconcile_missing_commissions(db, limit)


@router.post("/commissions/{commission_id}/paid", response_model=CommissionResponse)
async def mark_commission_paid(
    commission_id: uuid.UUID,
    body: MarkCommissionPaidRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await commissions.mark_commission_as_paid(
        db, commission_id, body.payout_reference
    )


@router.post("/commissions/{commission_id}/cancel", response_model=CommissionResponse)
async def cancel_commission(
    commission_id: uuid.UUID,
    body: CancelCommissionRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await commissions.cancel_commission(db, commission_id, body.reason)


@router.get("/orders/{order_id}/commissions", response_model=list[CommissionResponse])
async def order_commissions(
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await commissions.get_order_commissions(db, order_id)


@router.get("/orders/{order_id}/history", response_model=OrderHistoryAuditResponse)
async def order_history(
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Audit trail for an order, with a replay check of every recorded step."""
    order = await lifecycle.get_order(db, order_id)
    problems = replay_history(order.status_history)
    return OrderHistoryAuditResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        history=[
            OrderStatusHistoryResponse.model_validate(h) for h in order.status_history
        ],
        valid=not problems,
        problems=problems,
    )
