"""Referral program endpoints."""

import uuid
from typing import Annotated, Union

from fastapi import APIRouter, Body, Depends, status
from libs.auth.dependencies import get_current_user, require_admin, require_service_role
from libs.auth.models import AuthUser
from libs.common.errors import NotFoundError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.referral_service.models import (
    ProductReferral,
    ProductReferralCode,
    Referral,
    ReferralCode,
    ReferralCommission,
    ReferralType,
    SellerRevenueReferralCommission,
)
from services.referral_service.schemas import (
    CreateReferralRequest,
    MarkReferralCommissionPaidRequest,
    OrderReferralCommissionResponse,
    ProcessOrderCommissionResponse,
    ProcessSellerCommissionResponse,
    ProductReferralCodeCreate,
    ProductReferralCodeResponse,
    ProductReferralResponse,
    ReferralActionRequest,
    ReferralCodeResponse,
    ReferralCommissionResponse,
    ReferralResponse,
    ReferralStatsResponse,
    SellerAccountReferralCodeCreate,
    SellerAccountReferralCodeResponse,
    SellerAccountReferralResponse,
    SellerRevenueReferralCommissionResponse,
    UserReferralResponse,
    ValidateReferralCodeRequest,
)
from services.referral_service.services import accrual, codes, referrals
from services.referral_service.services.sources import (
    OrderSource,
    SellerSource,
    get_order_source,
    get_seller_source,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/referrals", tags=["referrals"])


# ---------------------------------------------------------------------------
# Variant -> response model
# ---------------------------------------------------------------------------


def code_response(referral_code: ReferralCode):
    if isinstance(referral_code, ProductReferralCode):
        return ProductReferralCodeResponse.model_validate(referral_code)
    return SellerAccountReferralCodeResponse.model_validate(referral_code)


def referral_response(referral: Referral):
    if isinstance(referral, ProductReferral):
        return ProductReferralResponse.model_validate(referral)
    return SellerAccountReferralResponse.model_validate(referral)


def commission_response(commission: ReferralCommission):
    if isinstance(commission, SellerRevenueReferralCommission):
        return SellerRevenueReferralCommissionResponse.model_validate(commission)
    return OrderReferralCommissionResponse.model_validate(commission)


# ---------------------------------------------------------------------------
# Codes
# ---------------------------------------------------------------------------


@router.post(
    "/codes", response_model=ReferralCodeResponse, status_code=status.HTTP_201_CREATED
)
async def create_referral_code(
    body: Annotated[
        Union[ProductReferralCodeCreate, SellerAccountReferralCodeCreate],
        Body(discriminator="type"),
    ],
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    referral_code = await codes.create_referral_code(
        db,
        user_id=body.user_id,
        type=ReferralType(body.type),
        product_id=getattr(body, "product_id", None),
        seller_id=getattr(body, "seller_id", None),
        commission_rate=body.commission_rate,
        max_usage=body.max_usage,
        expires_at=body.expires_at,
        notes=body.notes,
    )
    return code_response(referral_code)


@router.post("/validate", response_model=ReferralCodeResponse)
async def validate_referral_code(
    body: ValidateReferralCodeRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Check a code without consuming it."""
    referral_code = await codes.validate_referral_code(db, body.code, body.type)
    if referral_code is None:
        raise NotFoundError("Invalid or expired referral code")
    return code_response(referral_code)


@router.get("/codes/{user_id}", response_model=list[ReferralCodeResponse])
async def list_user_codes(
    user_id: str,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return [code_response(c) for c in await codes.get_user_referral_codes(db, user_id)]


# ---------------------------------------------------------------------------
# Referrals
# ---------------------------------------------------------------------------


@router.post("", response_model=ReferralResponse, status_code=status.HTTP_201_CREATED)
async def create_referral(
    body: CreateReferralRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    referral = await referrals.create_referral(
        db,
        referrer_id=body.referrer_id,
        referred_id=body.referred_id,
        type=body.type,
        code=body.referral_code,
        product_id=body.product_id,
        seller_id=body.seller_id,
        commission_rate=body.commission_rate,
        notes=body.notes,
    )
    return referral_response(referral)


@router.post("/activate", response_model=ReferralResponse)
async def activate_referral(
    body: ReferralActionRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    referral = await referrals.activate_referral(
        db, body.referral_id, seller_id=body.seller_id
    )
    return referral_response(referral)


@router.post("/complete", response_model=ReferralResponse)
async def complete_referral(
    body: ReferralActionRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return referral_response(await referrals.complete_referral(db, body.referral_id))


@router.post("/cancel", response_model=ReferralResponse)
async def cancel_referral(
    body: ReferralActionRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    referral = await referrals.cancel_referral(db, body.referral_id, body.reason)
    return referral_response(referral)


@router.get("/stats/{user_id}", response_model=ReferralStatsResponse)
async def referral_stats(
    user_id: str,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await referrals.get_user_referral_stats(db, user_id)


@router.get("/user/{user_id}", response_model=list[UserReferralResponse])
async def list_user_referrals(
    user_id: str,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return [
        UserReferralResponse(
            referral=referral_response(r),
            commissions=[commission_response(c) for c in r.commissions],
        )
        for r in await referrals.get_user_referrals(db, user_id)
    ]


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------


@router.get(
    "/commissions/pending/{user_id}", response_model=list[ReferralCommissionResponse]
)
async def list_pending_commissions(
    user_id: str,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return [
        commission_response(c)
        for c in await accrual.get_pending_commissions(db, user_id)
    ]


@router.post("/commissions/paid", response_model=ReferralCommissionResponse)
async def mark_commission_paid(
    body: MarkReferralCommissionPaidRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    commission = await accrual.mark_referral_commission_as_paid(
        db, body.commission_id, body.payout_transaction_id
    )
    return commission_response(commission)


@router.post(
    "/process-order-commission/{order_id}",
    response_model=ProcessOrderCommissionResponse,
)
async def process_order_commission(
    order_id: uuid.UUID,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
    order_source: OrderSource = Depends(get_order_source),
):
    created = await accrual.process_order_commission(db, order_id, order_source)
    return ProcessOrderCommissionResponse(
        order_id=order_id, commissions=[commission_response(c) for c in created]
    )


@router.post(
    "/process-seller-commission/{seller_id}",
    response_model=ProcessSellerCommissionResponse,
)
async def process_seller_commission(
    seller_id: str,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
    seller_source: SellerSource = Depends(get_seller_source),
):
    commission = await accrual.process_seller_referral_commission(
        db, seller_id, seller_source
    )
    return ProcessSellerCommissionResponse(
        seller_id=seller_id,
        commission=commission_response(commission) if commission else None,
    )
