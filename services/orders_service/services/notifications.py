"""Seller notification dispatch and inbox operations.

Dispatch is best effort: each notification is written inside a SAVEPOINT so a
failure rolls back only the notification and never the caller's transaction.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import AccessDeniedError, NotFoundError
from libs.common.logging import get_logger
from services.orders_service.models import (
    NotificationStatus,
    NotificationType,
    Order,
    OrderStatus,
    SellerNotification,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def dispatch(
    db: AsyncSession,
    *,
    seller_id: str,
    order_id: Optional[uuid.UUID],
    type: NotificationType,
    title: str,
    message: str,
    metadata: Optional[dict] = None,
) -> Optional[SellerNotification]:
    """Record a notification. Returns None when recording failed."""
    notification = SellerNotification(
        seller_id=seller_id,
        order_id=order_id,
        type=type,
        status=NotificationStatus.UNREAD,
        title=title,
        message=message,
        payload=metadata or {},
    )
    try:
        async with db.begin_nested():
            db.add(notification)
            await db.flush()
    except Exception:
        logger.exception(
            "Failed to record %s notification for seller %s (order %s)",
            type.value,
            seller_id,
            order_id,
        )
        return None
    return notification


async def send_new_order_notification(
    db: AsyncSession, order: Order, seller_id: str
) -> Optional[SellerNotification]:
    seller_items = [item for item in order.items if item.seller_id == seller_id]
    item_count = sum(item.quantity for item in seller_items)
    return await dispatch(
        db,
        seller_id=seller_id,
        order_id=order.id,
        type=NotificationType.NEW_ORDER,
        title="New Order Received",
        message=(
            f"You have received a new order #{order.order_number} "
            f"with {item_count} item(s)."
        ),
        metadata={
            "order_number": order.order_number,
            "item_count": item_count,
            "product_ids": [item.product_id for item in seller_items],
        },
    )


async def send_order_accepted_notification(
    db: AsyncSession, order: Order, seller_id: str
) -> Optional[SellerNotification]:
    return await dispatch(
        db,
        seller_id=seller_id,
        order_id=order.id,
        type=NotificationType.ORDER_ACCEPTED,
        title="Order Accepted",
        message=f"You accepted order #{order.order_number}.",
        metadata={"order_number": order.order_number},
    )


async def send_status_update_notification(
    db: AsyncSession,
    order: Order,
    seller_id: str,
    previous_status: OrderStatus,
    new_status: OrderStatus,
) -> Optional[SellerNotification]:
    label = new_status.value.replace("_", " ")
    return await dispatch(
        db,
        seller_id=seller_id,
        order_id=order.id,
        type=NotificationType.ORDER_STATUS_UPDATE,
        title="Order Status Updated",
        message=f"Order #{order.order_number} is now {label}.",
        metadata={
            "order_number": order.order_number,
            "previous_status": previous_status.value,
            "status": new_status.value,
        },
    )


async def send_commission_earned_notification(
    db: AsyncSession,
    *,
    seller_id: str,
    order: Order,
    commission_amount: Decimal,
) -> Optional[SellerNotification]:
    return await dispatch(
        db,
        seller_id=seller_id,
        order_id=order.id,
        type=NotificationType.COMMISSION_EARNED,
        title="Commission Earned",
        message=(
            f"A platform commission of {commission_amount} was calculated "
            f"for order #{order.order_number}."
        ),
        metadata={
            "order_number": order.order_number,
            "commission_amount": str(commission_amount),
        },
    )


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


async def list_seller_notifications(
    db: AsyncSession,
    seller_id: str,
    *,
    page: int = 1,
    limit: int = 20,
    status: Optional[NotificationStatus] = None,
) -> tuple[list[SellerNotification], int, int]:
    """Return ``(notifications, total, unread_count)``, newest first."""
    filters = [SellerNotification.seller_id == seller_id]
    if status is not None:
        filters.append(SellerNotification.status == status)

    total = await db.scalar(
        select(func.count()).select_from(SellerNotification).where(*filters)
    )
    unread = await db.scalar(
        select(func.count())
        .select_from(SellerNotification)
        .where(
            SellerNotification.seller_id == seller_id,
            SellerNotification.status == NotificationStatus.UNREAD,
        )
    )
    result = await db.execute(
        select(SellerNotification)
        .where(*filters)
        .order_by(SellerNotification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0, unread or 0


async def _get_owned_notification(
    db: AsyncSession, notification_id: uuid.UUID, seller_id: str
) -> SellerNotification:
    notification = await db.get(SellerNotification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if notification.seller_id != seller_id:
        raise AccessDeniedError("Notification belongs to another seller")
    return notification


async def mark_notification_as_read(
    db: AsyncSession, notification_id: uuid.UUID, seller_id: str
) -> SellerNotification:
    notification = await _get_owned_notification(db, notification_id, seller_id)
    if notification.status == NotificationStatus.UNREAD:
        notification.status = NotificationStatus.READ
        notification.read_at = utc_now()
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_all_as_read(db: AsyncSession, seller_id: str) -> int:
    """Mark every unread notification for the seller as read. Returns the count."""
    result = await db.execute(
        update(SellerNotification)
        .where(
            SellerNotification.seller_id == seller_id,
            SellerNotification.status == NotificationStatus.UNREAD,
        )
        .values(status=NotificationStatus.READ, read_at=utc_now(), updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def archive_notification(
    db: AsyncSession, notification_id: uuid.UUID, seller_id: str
) -> SellerNotification:
    notification = await _get_owned_notification(db, notification_id, seller_id)
    if notification.status != NotificationStatus.ARCHIVED:
        notification.status = NotificationStatus.ARCHIVED
        notification.read_at = notification.read_at or utc_now()
        await db.commit()
        await db.refresh(notification)
    return notification
