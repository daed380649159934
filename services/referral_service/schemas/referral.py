"""Referral request/response schemas.

Variants are discriminated on ``type`` (codes, referrals) and ``source``
(commissions) so each payload carries only the fields its variant uses.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from services.referral_service.models.enums import (
    CommissionSource,
    ReferralCommissionStatus,
    ReferralStatus,
    ReferralType,
)

# ---------------------------------------------------------------------------
# Referral codes
# ---------------------------------------------------------------------------


class _ReferralCodeCreateBase(BaseModel):
    user_id: str
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    max_usage: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None


class ProductReferralCodeCreate(_ReferralCodeCreateBase):
    type: Literal["product"]
    product_id: str


class SellerAccountReferralCodeCreate(_ReferralCodeCreateBase):
    type: Literal["seller_account"]
    seller_id: Optional[str] = None


ReferralCodeCreate = Annotated[
    Union[ProductReferralCodeCreate, SellerAccountReferralCodeCreate],
    Field(discriminator="type"),
]


class _ReferralCodeResponseBase(BaseModel):
    id: uuid.UUID
    user_id: str
    code: str
    commission_rate: Decimal
    is_active: bool
    expires_at: Optional[datetime] = None
    usage_count: int
    max_usage: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductReferralCodeResponse(_ReferralCodeResponseBase):
    type: Literal[ReferralType.PRODUCT]
    product_id: Optional[str] = None


class SellerAccountReferralCodeResponse(_ReferralCodeResponseBase):
    type: Literal[ReferralType.SELLER_ACCOUNT]
    seller_id: Optional[str] = None


ReferralCodeResponse = Annotated[
    Union[ProductReferralCodeResponse, SellerAccountReferralCodeResponse],
    Field(discriminator="type"),
]


class ValidateReferralCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=16)
    type: ReferralType


# ---------------------------------------------------------------------------
# Referrals
# ---------------------------------------------------------------------------


class CreateReferralRequest(BaseModel):
    referrer_id: str
    referred_id: str
    type: ReferralType
    referral_code: str = Field(..., min_length=1, max_length=16)
    product_id: Optional[str] = None
    seller_id: Optional[str] = None
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


class ReferralActionRequest(BaseModel):
    referral_id: uuid.UUID
    # Links the referred seller account on activation
    seller_id: Optional[str] = None
    reason: Optional[str] = None


class _ReferralResponseBase(BaseModel):
    id: uuid.UUID
    referrer_id: str
    referred_id: str
    status: ReferralStatus
    referral_code: str
    commission_rate: Decimal
    total_commission: Decimal
    expires_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductReferralResponse(_ReferralResponseBase):
    type: Literal[ReferralType.PRODUCT]
    product_id: Optional[str] = None


class SellerAccountReferralResponse(_ReferralResponseBase):
    type: Literal[ReferralType.SELLER_ACCOUNT]
    seller_id: Optional[str] = None


ReferralResponse = Annotated[
    Union[ProductReferralResponse, SellerAccountReferralResponse],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Referral commissions
# ---------------------------------------------------------------------------


class _ReferralCommissionResponseBase(BaseModel):
    id: uuid.UUID
    referral_id: uuid.UUID
    accrual_key: str
    base_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    status: ReferralCommissionStatus
    paid_at: Optional[datetime] = None
    payout_transaction_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderReferralCommissionResponse(_ReferralCommissionResponseBase):
    source: Literal[CommissionSource.ORDER]
    order_id: Optional[uuid.UUID] = None


class SellerRevenueReferralCommissionResponse(_ReferralCommissionResponseBase):
    source: Literal[CommissionSource.SELLER_REVENUE]
    revenue_snapshot_at: Optional[datetime] = None


ReferralCommissionResponse = Annotated[
    Union[OrderReferralCommissionResponse, SellerRevenueReferralCommissionResponse],
    Field(discriminator="source"),
]

# Nested fields receive model instances; the Literal tags keep these unambiguous.
_AnyReferral = Union[ProductReferralResponse, SellerAccountReferralResponse]
_AnyCommission = Union[
    OrderReferralCommissionResponse, SellerRevenueReferralCommissionResponse
]


class UserReferralResponse(BaseModel):
    """A referral with its accrued commissions."""

    referral: _AnyReferral
    commissions: list[_AnyCommission] = []


class MarkReferralCommissionPaidRequest(BaseModel):
    commission_id: uuid.UUID
    payout_transaction_id: str = Field(..., min_length=1, max_length=100)


class ProcessOrderCommissionResponse(BaseModel):
    order_id: uuid.UUID
    commissions: list[_AnyCommission]


class ProcessSellerCommissionResponse(BaseModel):
    seller_id: str
    commission: Optional[_AnyCommission] = None


class ReferralBreakdown(BaseModel):
    seller_accounts: int
    products: int


class ReferralStatsResponse(BaseModel):
    total_referrals: int
    active_referrals: int
    total_commission: Decimal
    pending_commission: Decimal
    paid_commission: Decimal
    referral_breakdown: ReferralBreakdown
