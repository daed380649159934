"""Enums for the Orders Service models."""

import enum

from libs.common.enums import OrderStatus  # noqa: F401


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(str, enum.Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    CALCULATED = "calculated"
    PAID = "paid"
    CANCELLED = "cancelled"


class NotificationType(str, enum.Enum):
    NEW_ORDER = "new_order"
    ORDER_ACCEPTED = "order_accepted"
    ORDER_STATUS_UPDATE = "order_status_update"
    COMMISSION_EARNED = "commission_earned"


class NotificationStatus(str, enum.Enum):
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"
