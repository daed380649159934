"""Platform commission engine.

One live commission per (order, seller). Inserts run inside a SAVEPOINT and
the partial unique index on live rows turns a duplicate into an
``IntegrityError``, which means the commission already exists.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import line_total, percent_of, to_money
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
)
from libs.common.logging import get_logger
from services.orders_service.models import (
    Commission,
    CommissionStatus,
    Order,
    OrderItem,
    OrderStatus,
)
from services.orders_service.services import notifications
from services.orders_service.services.lifecycle import _load_order
from sqlalchemy import and_, case, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

_LIVE = Commission.status != CommissionStatus.CANCELLED


def resolve_commission_rate(seller_id: str) -> Decimal:
    """Per-seller override, else the platform default (percent)."""
    settings = get_settings()
    override = settings.COMMISSION_RATE_OVERRIDES.get(seller_id)
    if override is not None:
        return Decimal(str(override))
    return Decimal(str(settings.DEFAULT_COMMISSION_RATE))


def seller_amounts(order: Order) -> dict[str, Decimal]:
    """Sum of ``quantity x unit_price`` per seller, in item order."""
    totals: dict[str, Decimal] = {}
    for item in order.items:
        totals[item.seller_id] = totals.get(item.seller_id, Decimal("0")) + line_total(
            item.quantity, item.unit_price
        )
    return {seller_id: to_money(amount) for seller_id, amount in totals.items()}


async def _live_commission(
    db: AsyncSession, order_id: uuid.UUID, seller_id: str
) -> Optional[Commission]:
    return await db.scalar(
        select(Commission).where(
            Commission.order_id == order_id,
            Commission.seller_id == seller_id,
            _LIVE,
        )
    )


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------


async def calculate_and_create_commission(
    db: AsyncSession, order_id: uuid.UUID
) -> list[Commission]:
    """Ensure a live commission row exists for every seller of a delivered order.

    Safe to call repeatedly; existing rows are returned untouched.
    """
    order = await _load_order(db, order_id, for_update=True)
    if order.status != OrderStatus.DELIVERED:
        raise PreconditionFailedError(
            f"Commission requires a delivered order (status is {order.status.value})"
        )

    commissions: list[Commission] = []
    created: list[Commission] = []
    for seller_id, amount in seller_amounts(order).items():
        existing = await _live_commission(db, order.id, seller_id)
        if existing is not None:
            commissions.append(existing)
            continue

        rate = resolve_commission_rate(seller_id)
        commission = Commission(
            order_id=order.id,
            seller_id=seller_id,
            order_amount=amount,
            commission_rate=rate,
            commission_amount=percent_of(amount, rate),
            status=CommissionStatus.CALCULATED,
            notes=f"Platform commission for order {order.order_number}",
        )
        try:
            async with db.begin_nested():
                db.add(commission)
                await db.flush()
        except IntegrityError:
            # Lost the race to a concurrent calculation.
            existing = await _live_commission(db, order.id, seller_id)
            if existing is None:
                raise
            commissions.append(existing)
            continue

        commissions.append(commission)
        created.append(commission)

    for commission in created:
        await notifications.send_commission_earned_notification(
            db,
            seller_id=commission.seller_id,
            order=order,
            commission_amount=commission.commission_amount,
        )

    await db.commit()

    if created:
        logger.info(
            "Order %s: created %d commission(s), total %s",
            order.order_number,
            len(created),
            sum((c.commission_amount for c in created), Decimal("0")),
        )
    return commissions


# ---------------------------------------------------------------------------
# Payout state
# ---------------------------------------------------------------------------


async def _lock_commission(db: AsyncSession, commission_id: uuid.UUID) -> Commission:
    commission = await db.scalar(
        select(Commission)
        .where(Commission.id == commission_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if commission is None:
        raise NotFoundError("Commission not found")
    return commission


async def mark_commission_as_paid(
    db: AsyncSession, commission_id: uuid.UUID, payout_reference: str
) -> Commission:
    commission = await _lock_commission(db, commission_id)
    if commission.status != CommissionStatus.CALCULATED:
        raise InvalidStateError(
            f"Only calculated commissions can be paid (status is {commission.status.value})"
        )

    commission.status = CommissionStatus.PAID
    commission.paid_at = utc_now()
    commission.payout_reference = payout_reference
    await db.commit()
    await db.refresh(commission)

    logger.info(
        "Commission %s paid (ref=%s, amount=%s)",
        commission.id,
        payout_reference,
        commission.commission_amount,
    )
    return commission


async def cancel_commission(
    db: AsyncSession, commission_id: uuid.UUID, reason: Optional[str] = None
) -> Commission:
    commission = await _lock_commission(db, commission_id)
    if commission.status not in (CommissionStatus.PENDING, CommissionStatus.CALCULATED):
        raise InvalidStateError(
            f"Commission cannot be cancelled in status {commission.status.value}"
        )

    commission.status = CommissionStatus.CANCELLED
    if reason:
        commission.notes = reason
    await db.commit()
    await db.refresh(commission)
    logger.info("Commission %s cancelled: %s", commission.id, reason or "-")
    return commission


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_seller_commission_summary(db: AsyncSession, seller_id: str) -> dict:
    result = await db.execute(
        select(
            func.coalesce(
                func.sum(case((_LIVE, Commission.commission_amount), else_=0)), 0
            ),
            func.coalesce(
                func.sum(
                    case(
                        (
                            Commission.status == CommissionStatus.PAID,
                            Commission.commission_amount,
                        ),
                        else_=0,
                    )
                ),
                0,
            ),
            func.coalesce(
                func.sum(
                    case(
                        (
                            Commission.status == CommissionStatus.CALCULATED,
                            Commission.commission_amount,
                        ),
                        else_=0,
                    )
                ),
                0,
            ),
            func.count(case((_LIVE, Commission.id))),
        ).where(Commission.seller_id == seller_id)
    )
    total, paid, pending, count = result.one()
    return {
        "seller_id": seller_id,
        "total_commission": to_money(total or 0),
        "paid_commission": to_money(paid or 0),
        "pending_commission": to_money(pending or 0),
        "commission_count": int(count or 0),
    }


async def list_seller_commissions(
    db: AsyncSession,
    seller_id: str,
    *,
    status: Optional[CommissionStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Commission], int]:
    filters = [Commission.seller_id == seller_id]
    if status is not None:
        filters.append(Commission.status == status)

    total = await db.scalar(
        select(func.count()).select_from(Commission).where(*filters)
    )
    result = await db.execute(
        select(Commission)
        .where(*filters)
        .order_by(Commission.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def get_order_commissions(
    db: AsyncSession, order_id: uuid.UUID
) -> list[Commission]:
    result = await db.execute(
        select(Commission)
        .where(Commission.order_id == order_id)
        .order_by(Commission.created_at)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


async def find_orders_missing_commissions(
    db: AsyncSession, limit: int
) -> list[uuid.UUID]:
    """Delivered orders with at least one seller lacking a live commission."""
    has_live = exists().where(
        Commission.order_id == OrderItem.order_id,
        Commission.seller_id == OrderItem.seller_id,
        _LIVE,
    )
    result = await db.execute(
        select(OrderItem.order_id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(and_(Order.status == OrderStatus.DELIVERED, ~has_live))
        .group_by(OrderItem.order_id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def reconcile_missing_commissions(
    db: AsyncSession, limit: Optional[int] = None
) -> dict:
    """Backfill commissions for delivered orders the best-effort path missed."""
    limit = limit or get_settings().COMMISSION_RECONCILE_BATCH
    order_ids = await find_orders_missing_commissions(db, limit)

    repaired = 0
    failed: list[str] = []
    for order_id in order_ids:
        try:
            await calculate_and_create_commission(db, order_id)
            repaired += 1
        except Exception:
            await db.rollback()
            failed.append(str(order_id))
            logger.exception("Reconciliation failed for order %s", order_id)

    if order_ids:
        logger.info(
            "Commission reconciliation: %d scanned, %d repaired, %d failed",
            len(order_ids),
            repaired,
            len(failed),
        )
    return {"scanned": len(order_ids), "repaired": repaired, "failed": failed}
