"""Referral commission accrual and payout.

Each accrual is keyed per referral (``order:<id>`` or ``seller-revenue``) and
the unique constraint on (referral_id, accrual_key) makes re-processing a no-op.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.currency import percent_of, to_money
from libs.common.datetime_utils import utc_now
from libs.common.enums import OrderStatus
from libs.common.errors import InvalidStateError, NotFoundError, PreconditionFailedError
from libs.common.logging import get_logger
from services.referral_service.models import (
    OrderReferralCommission,
    ProductReferral,
    Referral,
    ReferralCommission,
    ReferralCommissionStatus,
    ReferralStatus,
    SellerAccountReferral,
    SellerRevenueReferralCommission,
)
from services.referral_service.services.sources import (
    OrderLine,
    OrderSource,
    SellerSource,
)
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def matching_lines(referral: ProductReferral, lines) -> list[OrderLine]:
    """Lines sold by the referrer or for the referred product."""
    return [
        line
        for line in lines
        if line.seller_id == referral.referrer_id
        or (referral.product_id is not None and line.product_id == referral.product_id)
    ]


async def _accrual_exists(
    db: AsyncSession, referral_id: uuid.UUID, accrual_key: str
) -> Optional[ReferralCommission]:
    return await db.scalar(
        select(ReferralCommission).where(
            ReferralCommission.referral_id == referral_id,
            ReferralCommission.accrual_key == accrual_key,
        )
    )


async def _insert_accrual(db: AsyncSession, commission: ReferralCommission) -> bool:
    """Insert inside a SAVEPOINT. False when the accrual key is already taken."""
    try:
        async with db.begin_nested():
            db.add(commission)
            await db.flush()
    except IntegrityError:
        return False
    return True


async def process_order_commission(
    db: AsyncSession, order_id: uuid.UUID, order_source: OrderSource
) -> list[OrderReferralCommission]:
    """Accrue product-referral commission for a delivered order."""
    order = await order_source.get_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.status != OrderStatus.DELIVERED.value:
        raise PreconditionFailedError(
            f"Referral commission requires a delivered order (status is {order.status})"
        )

    if not order.lines:
        return []

    # Lock only referrals that can match a line of this order.
    seller_ids = sorted({line.seller_id for line in order.lines})
    product_ids = sorted({line.product_id for line in order.lines})
    result = await db.execute(
        select(ProductReferral)
        .where(
            ProductReferral.status == ReferralStatus.ACTIVE,
            or_(
                ProductReferral.referrer_id.in_(seller_ids),
                ProductReferral.product_id.in_(product_ids),
            ),
        )
        .order_by(ProductReferral.created_at)
        .with_for_update()
    )
    referrals = list(result.scalars().all())

    accrual_key = OrderReferralCommission.key_for(order.order_id)
    created: list[OrderReferralCommission] = []
    for referral in referrals:
        lines = matching_lines(referral, order.lines)
        if not lines:
            continue
        if await _accrual_exists(db, referral.id, accrual_key) is not None:
            continue

        base_amount = to_money(sum((line.amount for line in lines), Decimal("0")))
        commission = OrderReferralCommission(
            referral_id=referral.id,
            order_id=order.order_id,
            accrual_key=accrual_key,
            base_amount=base_amount,
            commission_rate=referral.commission_rate,
            commission_amount=percent_of(base_amount, referral.commission_rate),
            status=ReferralCommissionStatus.EARNED,
        )
        if not await _insert_accrual(db, commission):
            continue

        referral.total_commission = to_money(
            referral.total_commission + commission.commission_amount
        )
        created.append(commission)

    await db.commit()
    if created:
        logger.info(
            "Order %s: accrued %d product referral commission(s)",
            order.order_id,
            len(created),
        )
    return created


async def process_seller_referral_commission(
    db: AsyncSession, seller_id: str, seller_source: SellerSource
) -> Optional[SellerRevenueReferralCommission]:
    """One-shot commission on a referred seller's revenue.

    Returns the existing row on re-runs and None when nothing qualifies.
    """
    referral = await db.scalar(
        select(SellerAccountReferral)
        .where(
            SellerAccountReferral.seller_id == seller_id,
            SellerAccountReferral.status == ReferralStatus.ACTIVE,
        )
        .with_for_update()
    )
    if referral is None:
        return None

    accrual_key = SellerRevenueReferralCommission.ACCRUAL_KEY
    existing = await _accrual_exists(db, referral.id, accrual_key)
    if existing is not None:
        return existing

    revenue = to_money(await seller_source.get_revenue(seller_id))
    if revenue <= 0:
        return None

    commission = SellerRevenueReferralCommission(
        referral_id=referral.id,
        accrual_key=accrual_key,
        revenue_snapshot_at=utc_now(),
        base_amount=revenue,
        commission_rate=referral.commission_rate,
        commission_amount=percent_of(revenue, referral.commission_rate),
        status=ReferralCommissionStatus.EARNED,
    )
    if not await _insert_accrual(db, commission):
        await db.rollback()
        return await _accrual_exists(db, referral.id, accrual_key)

    referral.total_commission = to_money(
        referral.total_commission + commission.commission_amount
    )
    await db.commit()
    await db.refresh(commission)
    logger.info(
        "Seller %s: accrued referral commission %s on revenue %s",
        seller_id,
        commission.commission_amount,
        revenue,
    )
    return commission


async def mark_referral_commission_as_paid(
    db: AsyncSession, commission_id: uuid.UUID, payout_transaction_id: str
) -> ReferralCommission:
    commission = await db.scalar(
        select(ReferralCommission)
        .where(ReferralCommission.id == commission_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if commission is None:
        raise NotFoundError("Commission not found")
    if commission.status != ReferralCommissionStatus.EARNED:
        raise InvalidStateError(
            f"Commission cannot be marked as paid in status {commission.status.value}"
        )

    commission.status = ReferralCommissionStatus.PAID
    commission.paid_at = utc_now()
    commission.payout_transaction_id = payout_transaction_id
    await db.commit()
    await db.refresh(commission)
    logger.info("Referral commission %s paid (%s)", commission.id, payout_transaction_id)
    return commission


async def get_pending_commissions(
    db: AsyncSession, referrer_id: str
) -> list[ReferralCommission]:
    """Earned, unpaid commissions across the referrer's referrals."""
    result = await db.execute(
        select(ReferralCommission)
        .join(Referral, Referral.id == ReferralCommission.referral_id)
        .where(
            Referral.referrer_id == referrer_id,
            ReferralCommission.status == ReferralCommissionStatus.EARNED,
        )
        .order_by(ReferralCommission.created_at)
    )
    return list(result.scalars().all())
