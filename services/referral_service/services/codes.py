"""Referral code issuance, validation and consumption."""

import secrets
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.errors import (
    CodeGenerationFailedError,
    InvalidReferralCodeError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.referral_service.models import (
    ProductReferralCode,
    ReferralCode,
    ReferralType,
    SellerAccountReferralCode,
)
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def default_rate(referral_type: ReferralType) -> Decimal:
    settings = get_settings()
    if referral_type == ReferralType.SELLER_ACCOUNT:
        return Decimal(str(settings.SELLER_REFERRAL_RATE))
    return Decimal(str(settings.PRODUCT_REFERRAL_RATE))


def _build_code(
    referral_type: ReferralType,
    *,
    product_id: Optional[str],
    seller_id: Optional[str],
    **fields,
) -> ReferralCode:
    if referral_type == ReferralType.PRODUCT:
        return ProductReferralCode(product_id=product_id, **fields)
    return SellerAccountReferralCode(seller_id=seller_id, **fields)


async def create_referral_code(
    db: AsyncSession,
    *,
    user_id: str,
    type: ReferralType,
    product_id: Optional[str] = None,
    seller_id: Optional[str] = None,
    commission_rate: Optional[Decimal] = None,
    max_usage: Optional[int] = None,
    expires_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> ReferralCode:
    """Issue a new code with a unique 8-character value."""
    if type == ReferralType.PRODUCT and not product_id:
        raise ValidationError("Product referral codes require a product_id")
    if max_usage is not None and max_usage < 1:
        raise ValidationError("max_usage must be at least 1")

    rate = commission_rate if commission_rate is not None else default_rate(type)

    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        candidate = generate_code()
        taken = await db.scalar(
            select(ReferralCode.id).where(ReferralCode.code == candidate)
        )
        if taken is not None:
            continue

        referral_code = _build_code(
            type,
            product_id=product_id,
            seller_id=seller_id,
            user_id=user_id,
            code=candidate,
            commission_rate=rate,
            is_active=True,
            usage_count=0,
            max_usage=max_usage,
            expires_at=expires_at,
            notes=notes,
        )
        try:
            async with db.begin_nested():
                db.add(referral_code)
                await db.flush()
        except IntegrityError:
            logger.info("Referral code collision on attempt %d, retrying", attempt)
            continue

        await db.commit()
        await db.refresh(referral_code)
        logger.info(
            "Issued %s referral code %s to user %s", type.value, candidate, user_id
        )
        return referral_code

    logger.error("Gave up generating a referral code for user %s", user_id)
    raise CodeGenerationFailedError()


async def validate_referral_code(
    db: AsyncSession, code: str, type: ReferralType
) -> Optional[ReferralCode]:
    """Return the code only when it could be redeemed right now."""
    referral_code = await db.scalar(
        select(ReferralCode).where(
            ReferralCode.code == code,
            ReferralCode.type == type,
            ReferralCode.is_active.is_(True),
        )
    )
    if referral_code is None:
        return None
    expires_at = ensure_utc(referral_code.expires_at)
    if expires_at is not None and expires_at <= utc_now():
        return None
    if not referral_code.has_capacity:
        return None
    return referral_code


async def consume_referral_code(
    db: AsyncSession, code: str, type: ReferralType
) -> ReferralCode:
    """Atomically take one use of a code inside the caller's transaction.

    The conditional UPDATE is the only writer of ``usage_count``, so the cap
    holds under concurrent redemption.
    """
    now = utc_now()
    result = await db.execute(
        update(ReferralCode)
        .where(
            ReferralCode.code == code,
            ReferralCode.type == type,
            ReferralCode.is_active.is_(True),
            or_(ReferralCode.expires_at.is_(None), ReferralCode.expires_at > now),
            or_(
                ReferralCode.max_usage.is_(None),
                ReferralCode.usage_count < ReferralCode.max_usage,
            ),
        )
        .values(usage_count=ReferralCode.usage_count + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidReferralCodeError()

    return await db.scalar(
        select(ReferralCode)
        .where(ReferralCode.code == code)
        .execution_options(populate_existing=True)
    )


async def get_user_referral_codes(db: AsyncSession, user_id: str) -> list[ReferralCode]:
    result = await db.execute(
        select(ReferralCode)
        .where(ReferralCode.user_id == user_id, ReferralCode.is_active.is_(True))
        .order_by(ReferralCode.created_at.desc())
    )
    return list(result.scalars().all())
