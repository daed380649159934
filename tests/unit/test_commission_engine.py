"""Unit tests for the platform commission engine."""

import asyncio
import uuid
from decimal import Decimal

import pytest
from libs.common.config import get_settings
from libs.common.errors import (
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
)
from services.orders_service.models import (
    Commission,
    CommissionStatus,
    NotificationType,
    OrderStatus,
    SellerNotification,
)
from services.orders_service.services.commissions import (
    calculate_and_create_commission,
    cancel_commission,
    find_orders_missing_commissions,
    get_order_commissions,
    get_seller_commission_summary,
    list_seller_commissions,
    mark_commission_as_paid,
    reconcile_missing_commissions,
    resolve_commission_rate,
)
from services.orders_service.services.lifecycle import (
    accept_order,
    create_order,
    update_status,
)
from sqlalchemy import func, select
from tests.factories import OrderCreateFactory

DELIVERY_PATH = (
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _delivered_order(db, payload=None):
    """Walk a two-seller order all the way to delivered."""
    order = await create_order(db, payload or OrderCreateFactory.two_sellers())
    await accept_order(db, order.id, "seller-a")
    for status in DELIVERY_PATH:
        order = await update_status(db, order.id, "seller-a", status)
    return order


async def _delivered_without_commissions(db, monkeypatch):
    """Delivered order whose best-effort commission step failed."""
    from services.orders_service.services import commissions

    async def _boom(db, order_id):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(commissions, "calculate_and_create_commission", _boom)
    order = await _delivered_order(db)
    monkeypatch.undo()
    return order


async def _commission_count(db):
    return await db.scalar(select(func.count()).select_from(Commission))


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_per_seller_at_default_rate(db_session):
    """A: 2 x 10.00, B: 1 x 30.00 at 10% -> 2.00 and 3.00."""
    order = await _delivered_order(db_session)

    commissions = await get_order_commissions(db_session, order.id)
    by_seller = {c.seller_id: c for c in commissions}

    assert by_seller["seller-a"].order_amount == Decimal("20.00")
    assert by_seller["seller-a"].commission_amount == Decimal("2.00")
    assert by_seller["seller-b"].order_amount == Decimal("30.00")
    assert by_seller["seller-b"].commission_amount == Decimal("3.00")
    assert all(c.commission_rate == Decimal("10.00") for c in commissions)
    assert all(c.status == CommissionStatus.CALCULATED for c in commissions)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_calculation_is_idempotent(db_session):
    """Re-running returns the same rows and creates nothing new."""
    order = await _delivered_order(db_session)
    first = {c.id for c in await get_order_commissions(db_session, order.id)}

    again = await calculate_and_create_commission(db_session, order.id)

    assert {c.id for c in again} == first
    assert await _commission_count(db_session) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_earned_notification_sent_once(db_session):
    order = await _delivered_order(db_session)
    await calculate_and_create_commission(db_session, order.id)

    count = await db_session.scalar(
        select(func.count())
        .select_from(SellerNotification)
        .where(SellerNotification.type == NotificationType.COMMISSION_EARNED)
    )
    assert count == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_concurrent_calculations_create_one_commission_per_seller(
    concurrent_session_factory, monkeypatch
):
    """Racing calculations for one order leave a single live row per seller."""
    async with concurrent_session_factory() as db:
        order = await _delivered_without_commissions(db, monkeypatch)
    order_id = order.id

    async def _calculate():
        async with concurrent_session_factory() as db:
            return {c.id for c in await calculate_and_create_commission(db, order_id)}

    results = await asyncio.gather(*(_calculate() for _ in range(4)))

    assert len(results[0]) == 2
    assert all(ids == results[0] for ids in results)
    async with concurrent_session_factory() as db:
        assert await _commission_count(db) == 2
        earned = await db.scalar(
            select(func.count())
            .select_from(SellerNotification)
            .where(SellerNotification.type == NotificationType.COMMISSION_EARNED)
        )
        assert earned == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_requires_delivered_order(db_session):
    order = await create_order(db_session, OrderCreateFactory.build())

    with pytest.raises(PreconditionFailedError):
        await calculate_and_create_commission(db_session, order.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_rate_override(db_session, monkeypatch):
    """Per-seller overrides beat the platform default."""
    settings = get_settings()
    monkeypatch.setattr(
        settings, "COMMISSION_RATE_OVERRIDES", {"seller-b": Decimal("15.00")}
    )

    assert resolve_commission_rate("seller-a") == Decimal("10.00")
    assert resolve_commission_rate("seller-b") == Decimal("15.00")

    order = await _delivered_order(db_session)
    by_seller = {
        c.seller_id: c for c in await get_order_commissions(db_session, order.id)
    }
    assert by_seller["seller-b"].commission_amount == Decimal("4.50")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_rounds_half_up(db_session):
    """3 x 3.35 = 10.05 at 10% -> 1.005 -> 1.01."""
    payload = OrderCreateFactory.build(
        items=[
            {
                "product_id": "prod-x",
                "seller_id": "seller-a",
                "product_name": "Soap",
                "quantity": 3,
                "unit_price": "3.35",
            }
        ]
    )
    order = await _delivered_order(db_session, payload)

    [commission] = await get_order_commissions(db_session, order.id)
    assert commission.commission_amount == Decimal("1.01")


# ---------------------------------------------------------------------------
# Payout state
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_commission_as_paid(db_session):
    order = await _delivered_order(db_session)
    commission = (await get_order_commissions(db_session, order.id))[0]

    paid = await mark_commission_as_paid(db_session, commission.id, "PAYOUT-1")

    assert paid.status == CommissionStatus.PAID
    assert paid.paid_at is not None
    assert paid.payout_reference == "PAYOUT-1"

    with pytest.raises(InvalidStateError):
        await mark_commission_as_paid(db_session, commission.id, "PAYOUT-2")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_missing_commission_as_paid(db_session):
    with pytest.raises(NotFoundError):
        await mark_commission_as_paid(db_session, uuid.uuid4(), "PAYOUT-1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancelled_commission_can_be_recalculated(db_session):
    """Cancelling frees the (order, seller) slot for a fresh commission."""
    order = await _delivered_order(db_session)
    by_seller = {
        c.seller_id: c for c in await get_order_commissions(db_session, order.id)
    }

    cancelled = await cancel_commission(
        db_session, by_seller["seller-a"].id, "Disputed"
    )
    assert cancelled.status == CommissionStatus.CANCELLED
    assert cancelled.notes == "Disputed"

    live = await calculate_and_create_commission(db_session, order.id)
    assert len(live) == 2
    assert await _commission_count(db_session) == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_paid_commission_cannot_be_cancelled(db_session):
    order = await _delivered_order(db_session)
    commission = (await get_order_commissions(db_session, order.id))[0]
    await mark_commission_as_paid(db_session, commission.id, "PAYOUT-1")

    with pytest.raises(InvalidStateError):
        await cancel_commission(db_session, commission.id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_seller_commission_summary(db_session):
    first = await _delivered_order(db_session)
    await _delivered_order(db_session)

    [paid_row] = [
        c
        for c in await get_order_commissions(db_session, first.id)
        if c.seller_id == "seller-a"
    ]
    await mark_commission_as_paid(db_session, paid_row.id, "PAYOUT-1")

    summary = await get_seller_commission_summary(db_session, "seller-a")

    assert summary == {
        "seller_id": "seller-a",
        "total_commission": Decimal("4.00"),
        "paid_commission": Decimal("2.00"),
        "pending_commission": Decimal("2.00"),
        "commission_count": 2,
    }


@pytest.mark.asyncio
@pytest.mark.unit
async def test_summary_for_seller_without_commissions(db_session):
    summary = await get_seller_commission_summary(db_session, "nobody")
    assert summary["total_commission"] == Decimal("0.00")
    assert summary["commission_count"] == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_seller_commissions_filters_status(db_session):
    order = await _delivered_order(db_session)
    commission = [
        c
        for c in await get_order_commissions(db_session, order.id)
        if c.seller_id == "seller-b"
    ][0]
    await mark_commission_as_paid(db_session, commission.id, "PAYOUT-1")

    rows, total = await list_seller_commissions(db_session, "seller-b")
    assert total == 1

    rows, total = await list_seller_commissions(
        db_session, "seller-b", status=CommissionStatus.CALCULATED
    )
    assert (rows, total) == ([], 0)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reconcile_backfills_missing_commissions(db_session, monkeypatch):
    """Delivered orders without commissions are repaired, once."""
    order = await _delivered_without_commissions(db_session, monkeypatch)
    assert await _commission_count(db_session) == 0
    assert await find_orders_missing_commissions(db_session, 10) == [order.id]

    result = await reconcile_missing_commissions(db_session)

    assert result == {"scanned": 1, "repaired": 1, "failed": []}
    assert await _commission_count(db_session) == 2

    second = await reconcile_missing_commissions(db_session)
    assert second == {"scanned": 0, "repaired": 0, "failed": []}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reconcile_ignores_undelivered_orders(db_session):
    await create_order(db_session, OrderCreateFactory.two_sellers())

    result = await reconcile_missing_commissions(db_session, limit=5)
    assert result["scanned"] == 0
