"""Referral records: creation and status lifecycle.

pending -> active -> completed; pending may expire; pending/active may be cancelled.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import to_money
from libs.common.datetime_utils import days_from_now, ensure_utc, utc_now
from libs.common.errors import (
    DuplicateResourceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.referral_service.models import (
    ProductReferral,
    Referral,
    ReferralCommission,
    ReferralCommissionStatus,
    ReferralStatus,
    ReferralType,
    SellerAccountReferral,
)
from services.referral_service.services.codes import consume_referral_code
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


async def _existing_referral(
    db: AsyncSession, referred_id: str, type: ReferralType
) -> Optional[Referral]:
    return await db.scalar(
        select(Referral).where(Referral.referred_id == referred_id, Referral.type == type)
    )


async def create_referral(
    db: AsyncSession,
    *,
    referrer_id: str,
    referred_id: str,
    type: ReferralType,
    code: str,
    product_id: Optional[str] = None,
    seller_id: Optional[str] = None,
    commission_rate: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> Referral:
    """Redeem ``code`` and record the referral in a single transaction."""
    if referrer_id == referred_id:
        raise ValidationError("Users cannot refer themselves")

    if await _existing_referral(db, referred_id, type) is not None:
        raise DuplicateResourceError(
            f"User has already been referred for {type.value}"
        )

    referral_code = await consume_referral_code(db, code, type)
    if referral_code.user_id == referred_id:
        await db.rollback()
        raise ValidationError("Users cannot redeem their own referral code")

    fields = dict(
        referrer_id=referrer_id,
        referred_id=referred_id,
        status=ReferralStatus.PENDING,
        referral_code=referral_code.code,
        referral_code_id=referral_code.id,
        commission_rate=(
            commission_rate
            if commission_rate is not None
            else referral_code.commission_rate
        ),
        total_commission=Decimal("0.00"),
        expires_at=days_from_now(get_settings().REFERRAL_EXPIRY_DAYS),
        notes=notes,
    )
    if type == ReferralType.PRODUCT:
        referral: Referral = ProductReferral(
            product_id=product_id or getattr(referral_code, "product_id", None),
            **fields,
        )
    else:
        referral = SellerAccountReferral(
            seller_id=seller_id or getattr(referral_code, "seller_id", None),
            **fields,
        )

    try:
        async with db.begin_nested():
            db.add(referral)
            await db.flush()
    except IntegrityError:
        # Concurrent referral for the same user; give the code use back.
        await db.rollback()
        raise DuplicateResourceError(
            f"User has already been referred for {type.value}"
        )

    await db.commit()
    await db.refresh(referral)
    logger.info(
        "Referral %s created: %s -> %s via %s (%s)",
        referral.id,
        referrer_id,
        referred_id,
        referral_code.code,
        type.value,
    )
    return referral


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def _lock_referral(db: AsyncSession, referral_id: uuid.UUID) -> Referral:
    referral = await db.scalar(
        select(Referral)
        .where(Referral.id == referral_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if referral is None:
        raise NotFoundError("Referral not found")
    return referral


def _is_expired(referral: Referral) -> bool:
    expires_at = ensure_utc(referral.expires_at)
    return expires_at is not None and expires_at <= utc_now()


async def activate_referral(
    db: AsyncSession, referral_id: uuid.UUID, *, seller_id: Optional[str] = None
) -> Referral:
    """Activate a pending referral once the referred user has qualified."""
    referral = await _lock_referral(db, referral_id)
    if referral.status != ReferralStatus.PENDING:
        raise InvalidStateError(
            f"Referral cannot be activated in status {referral.status.value}"
        )
    if _is_expired(referral):
        referral.status = ReferralStatus.EXPIRED
        await db.commit()
        raise InvalidStateError("Referral has expired")

    referral.status = ReferralStatus.ACTIVE
    referral.activated_at = utc_now()
    if seller_id and isinstance(referral, SellerAccountReferral):
        referral.seller_id = seller_id
    await db.commit()
    await db.refresh(referral)
    logger.info("Referral %s activated", referral.id)
    return referral


async def complete_referral(db: AsyncSession, referral_id: uuid.UUID) -> Referral:
    referral = await _lock_referral(db, referral_id)
    if referral.status != ReferralStatus.ACTIVE:
        raise InvalidStateError(
            f"Referral cannot be completed in status {referral.status.value}"
        )
    referral.status = ReferralStatus.COMPLETED
    referral.completed_at = utc_now()
    await db.commit()
    await db.refresh(referral)
    logger.info("Referral %s completed", referral.id)
    return referral


async def cancel_referral(
    db: AsyncSession, referral_id: uuid.UUID, reason: Optional[str] = None
) -> Referral:
    referral = await _lock_referral(db, referral_id)
    if referral.status not in (ReferralStatus.PENDING, ReferralStatus.ACTIVE):
        raise InvalidStateError(
            f"Referral cannot be cancelled in status {referral.status.value}"
        )
    referral.status = ReferralStatus.CANCELLED
    if reason:
        referral.notes = reason
    await db.commit()
    await db.refresh(referral)
    logger.info("Referral %s cancelled", referral.id)
    return referral


async def expire_stale_referrals(db: AsyncSession) -> int:
    """Move pending referrals past their expiry to ``expired``."""
    now = utc_now()
    result = await db.execute(
        update(Referral)
        .where(
            Referral.status == ReferralStatus.PENDING,
            Referral.expires_at.is_not(None),
            Referral.expires_at <= now,
        )
        .values(status=ReferralStatus.EXPIRED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    expired = result.rowcount or 0
    if expired:
        logger.info("Expired %d stale referral(s)", expired)
    return expired


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_referral(db: AsyncSession, referral_id: uuid.UUID) -> Referral:
    referral = await db.get(Referral, referral_id)
    if referral is None:
        raise NotFoundError("Referral not found")
    return referral


async def get_user_referrals(db: AsyncSession, referrer_id: str) -> list[Referral]:
    result = await db.execute(
        select(Referral)
        .where(Referral.referrer_id == referrer_id)
        .options(selectinload(Referral.commissions))
        .order_by(Referral.created_at.desc())
    )
    return list(result.scalars().all())


async def get_user_referral_stats(db: AsyncSession, referrer_id: str) -> dict:
    """Referral counts and commission totals for a referrer."""
    counts = await db.execute(
        select(
            func.count(Referral.id),
            func.count(case((Referral.status == ReferralStatus.ACTIVE, Referral.id))),
            func.count(
                case((Referral.type == ReferralType.SELLER_ACCOUNT, Referral.id))
            ),
            func.count(case((Referral.type == ReferralType.PRODUCT, Referral.id))),
            func.coalesce(func.sum(Referral.total_commission), 0),
        ).where(Referral.referrer_id == referrer_id)
    )
    total, active, seller_accounts, products, total_commission = counts.one()

    def _sum_status(*statuses: ReferralCommissionStatus):
        return func.coalesce(
            func.sum(
                case(
                    (
                        ReferralCommission.status.in_(statuses),
                        ReferralCommission.commission_amount,
                    ),
                    else_=0,
                )
            ),
            0,
        )

    amounts = await db.execute(
        select(
            _sum_status(
                ReferralCommissionStatus.PENDING, ReferralCommissionStatus.EARNED
            ),
            _sum_status(ReferralCommissionStatus.PAID),
        )
        .join(Referral, Referral.id == ReferralCommission.referral_id)
        .where(Referral.referrer_id == referrer_id)
    )
    pending, paid = amounts.one()

    return {
        "total_referrals": int(total or 0),
        "active_referrals": int(active or 0),
        "total_commission": to_money(total_commission or 0),
        "pending_commission": to_money(pending or 0),
        "paid_commission": to_money(paid or 0),
        "referral_breakdown": {
            "seller_accounts": int(seller_accounts or 0),
            "products": int(products or 0),
        },
    }
