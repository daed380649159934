"""Order lifecycle: creation, seller notification, acceptance and status updates.

Every transition locks the order row, checks the persisted status against the
transition table and bumps ``Order.version``; the UPDATE is guarded on the
version read, so a concurrent writer surfaces as ``InvalidStateError``.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.currency import line_total, to_money
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    AccessDeniedError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
)
from libs.common.logging import get_logger
from services.orders_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
)
from services.orders_service.schemas.order import OrderCreate
from services.orders_service.services import notifications
from services.orders_service.services.transitions import is_transition_allowed
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
MAX_ORDER_NUMBER_ATTEMPTS = 5


# ---------------------------------------------------------------------------
# Loading helpers
# ---------------------------------------------------------------------------


async def _load_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Order:
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _ensure_seller_owns(order: Order, seller_id: str) -> None:
    if seller_id not in order.seller_ids():
        raise AccessDeniedError("Order does not contain any of your products")


async def _apply_status(
    db: AsyncSession, order: Order, new_status: OrderStatus
) -> OrderStatus:
    """Mutate and flush the order status. Returns the previous status."""
    previous = order.status
    order.status = new_status
    now = utc_now()
    if new_status == OrderStatus.DELIVERED:
        order.delivered_at = now
    elif new_status == OrderStatus.CANCELLED:
        order.cancelled_at = now

    try:
        await db.flush()
    except StaleDataError:
        await db.rollback()
        raise InvalidStateError("Order was modified concurrently, please retry")
    return previous


def _append_history(
    order: Order,
    *,
    previous_status: Optional[OrderStatus],
    status: OrderStatus,
    changed_by: str,
    notes: Optional[str],
    notification_sent: bool,
) -> OrderStatusHistory:
    entry = OrderStatusHistory(
        sequence=len(order.status_history) + 1,
        previous_status=previous_status,
        status=status,
        changed_by=changed_by,
        notes=notes,
        notification_sent=notification_sent,
    )
    order.status_history.append(entry)
    return entry


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


async def _unique_order_number(db: AsyncSession) -> str:
    for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
        candidate = Order.generate_order_number()
        exists = await db.scalar(
            select(Order.id).where(Order.order_number == candidate)
        )
        if exists is None:
            return candidate
    raise InvalidStateError("Could not allocate an order number, please retry")


async def create_order(
    db: AsyncSession, payload: OrderCreate, *, created_by: str = SYSTEM_ACTOR
) -> Order:
    """Persist a checked-out order and hand it to its sellers."""
    items = [
        OrderItem(
            product_id=item.product_id,
            seller_id=item.seller_id,
            product_name=item.product_name,
            product_slug=item.product_slug,
            sku=item.sku,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            total_price=(
                to_money(item.total_price)
                if item.total_price is not None
                else line_total(item.quantity, item.unit_price)
            ),
            tax_amount=to_money(item.tax_amount),
            discount_amount=to_money(item.discount_amount),
            selected_variants=item.selected_variants,
            product_snapshot=item.product_snapshot,
            thumbnail_image=item.thumbnail_image,
        )
        for item in payload.items
    ]

    subtotal = (
        to_money(payload.subtotal)
        if payload.subtotal is not None
        else to_money(sum((i.total_price for i in items), Decimal("0")))
    )
    total = (
        to_money(payload.total_amount)
        if payload.total_amount is not None
        else to_money(
            subtotal
            + payload.tax_amount
            + payload.shipping_amount
            - payload.discount_amount
        )
    )

    order = Order(
        order_number=await _unique_order_number(db),
        user_id=payload.user_id,
        guest_id=payload.guest_id,
        customer_email=payload.customer_email,
        customer_first_name=payload.customer_first_name,
        customer_last_name=payload.customer_last_name,
        subtotal=subtotal,
        tax_amount=to_money(payload.tax_amount),
        shipping_amount=to_money(payload.shipping_amount),
        discount_amount=to_money(payload.discount_amount),
        total_amount=total,
        status=OrderStatus.PENDING,
        payment_status=payload.payment_status,
        payment_method=payload.payment_method,
        payment_transaction_id=payload.payment_transaction_id,
        shipping_address=payload.shipping_address,
        billing_address=payload.billing_address,
        notes=payload.notes,
        items=items,
        status_history=[],
    )
    _append_history(
        order,
        previous_status=None,
        status=OrderStatus.PENDING,
        changed_by=created_by,
        notes="Order placed.",
        notification_sent=False,
    )
    db.add(order)
    await db.commit()

    logger.info(
        "Created order %s (%s) with %d item(s) for %d seller(s)",
        order.order_number,
        order.id,
        len(items),
        len(order.seller_ids()),
    )
    return await notify_sellers(db, order.id)


async def notify_sellers(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Move a pending order to ``seller_notified`` and tell each seller."""
    order = await _load_order(db, order_id, for_update=True)
    if order.status != OrderStatus.PENDING:
        raise InvalidStateError(
            f"Sellers can only be notified for pending orders (status is {order.status.value})"
        )
    if not is_transition_allowed(order.status, OrderStatus.SELLER_NOTIFIED, system=True):
        raise InvalidTransitionError(order.status.value, OrderStatus.SELLER_NOTIFIED.value)

    previous = await _apply_status(db, order, OrderStatus.SELLER_NOTIFIED)

    sent = 0
    for seller_id in order.seller_ids():
        if await notifications.send_new_order_notification(db, order, seller_id):
            sent += 1

    _append_history(
        order,
        previous_status=previous,
        status=OrderStatus.SELLER_NOTIFIED,
        changed_by=SYSTEM_ACTOR,
        notes=f"Notified {sent} seller(s).",
        notification_sent=sent > 0,
    )
    await db.commit()
    logger.info("Order %s: notified %d seller(s)", order.order_number, sent)
    return await _load_order(db, order_id)


# ---------------------------------------------------------------------------
# Seller actions
# ---------------------------------------------------------------------------


async def accept_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    actor_seller_id: str,
    *,
    notes: Optional[str] = None,
    estimated_processing_time: Optional[int] = None,
) -> Order:
    order = await _load_order(db, order_id, for_update=True)
    _ensure_seller_owns(order, actor_seller_id)
    if order.status != OrderStatus.SELLER_NOTIFIED:
        raise InvalidStateError(
            f"Order cannot be accepted in status {order.status.value}"
        )

    note_parts = []
    if estimated_processing_time is not None:
        note_parts.append(
            f"Estimated processing time: {estimated_processing_time} days."
        )
    if notes:
        note_parts.append(notes)
    if note_parts:
        order.notes = " ".join(note_parts)

    previous = await _apply_status(db, order, OrderStatus.SELLER_ACCEPTED)
    sent = await notifications.send_order_accepted_notification(
        db, order, actor_seller_id
    )
    _append_history(
        order,
        previous_status=previous,
        status=OrderStatus.SELLER_ACCEPTED,
        changed_by=actor_seller_id,
        notes="Order accepted by seller.",
        notification_sent=sent is not None,
    )
    await db.commit()

    logger.info("Order %s accepted by seller %s", order.order_number, actor_seller_id)
    return await _load_order(db, order_id)


async def update_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    actor_seller_id: str,
    new_status: OrderStatus,
    *,
    notes: Optional[str] = None,
    tracking_number: Optional[str] = None,
    estimated_delivery_date: Optional[datetime] = None,
) -> Order:
    order = await _load_order(db, order_id, for_update=True)
    _ensure_seller_owns(order, actor_seller_id)
    if not is_transition_allowed(order.status, new_status):
        raise InvalidTransitionError(order.status.value, new_status.value)

    if tracking_number:
        order.tracking_number = tracking_number
    if estimated_delivery_date:
        order.estimated_delivery_date = estimated_delivery_date

    previous = await _apply_status(db, order, new_status)

    sent = 0
    for seller_id in order.seller_ids():
        if await notifications.send_status_update_notification(
            db, order, seller_id, previous, new_status
        ):
            sent += 1

    _append_history(
        order,
        previous_status=previous,
        status=new_status,
        changed_by=actor_seller_id,
        notes=notes or f"Status updated to {new_status.value}",
        notification_sent=sent > 0,
    )
    order_number = order.order_number
    await db.commit()
    logger.info(
        "Order %s: %s -> %s by seller %s",
        order_number,
        previous.value,
        new_status.value,
        actor_seller_id,
    )

    if new_status == OrderStatus.DELIVERED:
        # Deferred import: commissions depends on this module's loaders.
        from services.orders_service.services.commissions import (
            calculate_and_create_commission,
        )

        try:
            await calculate_and_create_commission(db, order_id)
        except Exception:
            await db.rollback()
            logger.exception(
                "Commission calculation failed for delivered order %s; "
                "reconciliation will retry",
                order_number,
            )

    return await _load_order(db, order_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    return await _load_order(db, order_id)


async def get_order_lines(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Order with its items, for read-through callers in other services."""
    return await _load_order(db, order_id)


async def list_seller_orders(
    db: AsyncSession,
    seller_id: str,
    *,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Order], int]:
    """Orders containing at least one of the seller's items, newest first."""
    seller_orders = select(OrderItem.order_id).where(OrderItem.seller_id == seller_id)
    filters = [Order.id.in_(seller_orders)]
    if status is not None:
        filters.append(Order.status == status)

    total = await db.scalar(select(func.count()).select_from(Order).where(*filters))
    result = await db.execute(
        select(Order)
        .where(*filters)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def seller_revenue(db: AsyncSession, seller_id: str) -> tuple[Decimal, int]:
    """Return ``(revenue, order_count)`` over the seller's delivered orders."""
    result = await db.execute(
        select(
            func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price), 0),
            func.count(func.distinct(OrderItem.order_id)),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .where(
            OrderItem.seller_id == seller_id,
            Order.status == OrderStatus.DELIVERED,
        )
    )
    revenue, order_count = result.one()
    return to_money(revenue or 0), int(order_count or 0)
