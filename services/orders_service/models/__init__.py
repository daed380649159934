"""Orders Service models package.

Re-exports every model and enum so the mapper registry and Alembic see them on import.
"""

from services.orders_service.models.commission import Commission  # noqa: F401
from services.orders_service.models.enums import (
    CommissionStatus,
    NotificationStatus,
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from services.orders_service.models.notification import SellerNotification
from services.orders_service.models.order import Order, OrderItem, OrderStatusHistory

__all__ = [
    "Commission",
    "CommissionStatus",
    "NotificationStatus",
    "NotificationType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderStatusHistory",
    "PaymentMethod",
    "PaymentStatus",
    "SellerNotification",
]
