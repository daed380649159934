"""Enums shared across service boundaries.

Values travel over the internal API as plain strings; both sides compare
against these members so the wire values cannot drift.
"""

import enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    SELLER_NOTIFIED = "seller_notified"
    SELLER_ACCEPTED = "seller_accepted"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    RETURNED = "returned"
