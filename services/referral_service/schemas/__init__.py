"""Referral Service schemas package."""

from services.referral_service.schemas.referral import (  # noqa: F401
    CreateReferralRequest,
    MarkReferralCommissionPaidRequest,
    OrderReferralCommissionResponse,
    ProcessOrderCommissionResponse,
    ProcessSellerCommissionResponse,
    ProductReferralCodeCreate,
    ProductReferralCodeResponse,
    ProductReferralResponse,
    ReferralActionRequest,
    ReferralCodeCreate,
    ReferralCodeResponse,
    ReferralCommissionResponse,
    ReferralResponse,
    ReferralStatsResponse,
    SellerAccountReferralCodeCreate,
    SellerAccountReferralCodeResponse,
    SellerAccountReferralResponse,
    SellerRevenueReferralCommissionResponse,
    UserReferralResponse,
    ValidateReferralCodeRequest,
)
