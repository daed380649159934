"""Referral Service models package.

Re-exports every model and enum so the mapper registry and Alembic see them on import.
"""

from services.referral_service.models.enums import (  # noqa: F401
    CommissionSource,
    ReferralCommissionStatus,
    ReferralStatus,
    ReferralType,
)
from services.referral_service.models.referral import (  # noqa: F401
    OrderReferralCommission,
    ProductReferral,
    ProductReferralCode,
    Referral,
    ReferralCode,
    ReferralCommission,
    SellerAccountReferral,
    SellerAccountReferralCode,
    SellerRevenueReferralCommission,
)

__all__ = [
    "CommissionSource",
    "OrderReferralCommission",
    "ProductReferral",
    "ProductReferralCode",
    "Referral",
    "ReferralCode",
    "ReferralCommission",
    "ReferralCommissionStatus",
    "ReferralStatus",
    "ReferralType",
    "SellerAccountReferral",
    "SellerAccountReferralCode",
    "SellerRevenueReferralCommission",
]
