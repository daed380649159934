"""Enums for the Referral Service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ReferralType(str, enum.Enum):
    SELLER_ACCOUNT = "seller_account"
    PRODUCT = "product"


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ReferralCommissionStatus(str, enum.Enum):
    PENDING = "pending"
    EARNED = "earned"
    PAID = "paid"
    CANCELLED = "cancelled"


class CommissionSource(str, enum.Enum):
    ORDER = "order"
    SELLER_REVENUE = "seller_revenue"
