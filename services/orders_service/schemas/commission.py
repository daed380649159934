"""Commission request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models.enums import CommissionStatus


class CommissionResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    seller_id: str
    order_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    status: CommissionStatus
    notes: Optional[str] = None
    payout_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommissionListResponse(BaseModel):
    commissions: list[CommissionResponse]
    total: int
    page: int
    limit: int


class CommissionSummaryResponse(BaseModel):
    seller_id: str
    total_commission: Decimal
    paid_commission: Decimal
    pending_commission: Decimal
    commission_count: int


class MarkCommissionPaidRequest(BaseModel):
    payout_reference: str = Field(..., min_length=1, max_length=100)


class CancelCommissionRequest(BaseModel):
    reason: Optional[str] = None


class ReconcileResponse(BaseModel):
    scanned: int
    repaired: int
    failed: list[str] = []
