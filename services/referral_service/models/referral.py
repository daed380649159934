"""Referral program models.

Each table is a single-table polymorphic hierarchy: the discriminator column
selects the variant and each variant maps only the columns it uses.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, Money, Rate
from services.referral_service.models.enums import (
    CommissionSource,
    ReferralCommissionStatus,
    ReferralStatus,
    ReferralType,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

REFERRAL_TYPE_ENUM = SAEnum(
    ReferralType, values_callable=enum_values, name="referral_type_enum"
)


# ============================================================================
# REFERRAL CODES
# ============================================================================


class ReferralCode(Base):
    """Shareable codes issued to a user."""

    __tablename__ = "referral_codes"
    __table_args__ = (
        CheckConstraint(
            "max_usage IS NULL OR usage_count <= max_usage",
            name="ck_referral_codes_usage_cap",
        ),
        CheckConstraint("usage_count >= 0", name="ck_referral_codes_usage_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    code: Mapped[str] = mapped_column(
        String(16), unique=True, index=True, nullable=False
    )
    type: Mapped[ReferralType] = mapped_column(REFERRAL_TYPE_ENUM, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    # None means unlimited
    max_usage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __mapper_args__ = {"polymorphic_on": "type", "with_polymorphic": "*"}

    @property
    def has_capacity(self) -> bool:
        return self.max_usage is None or self.usage_count < self.max_usage

    def __repr__(self) -> str:
        return f"<ReferralCode {self.code} {self.type.value}>"


class ProductReferralCode(ReferralCode):
    product_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __mapper_args__ = {"polymorphic_identity": ReferralType.PRODUCT}


class SellerAccountReferralCode(ReferralCode):
    seller_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __mapper_args__ = {"polymorphic_identity": ReferralType.SELLER_ACCOUNT}


# ============================================================================
# REFERRALS
# ============================================================================


class Referral(Base):
    """A referred user, one per (referred user, type)."""

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint("referred_id", "type", name="uq_referrals_referred_type"),
        Index("ix_referrals_status_type", "status", "type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    referrer_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    referred_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[ReferralType] = mapped_column(REFERRAL_TYPE_ENUM, nullable=False)
    status: Mapped[ReferralStatus] = mapped_column(
        SAEnum(
            ReferralStatus,
            name="referral_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ReferralStatus.PENDING,
        nullable=False,
    )
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    referral_code_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("referral_codes.id", ondelete="SET NULL"), nullable=True
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Rate, default=Decimal("0"), nullable=False
    )
    total_commission: Mapped[Decimal] = mapped_column(
        Money, default=Decimal("0"), server_default="0", nullable=False
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    activated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    commissions = relationship(
        "ReferralCommission",
        back_populates="referral",
        order_by="ReferralCommission.created_at",
    )

    __mapper_args__ = {"polymorphic_on": "type", "with_polymorphic": "*"}

    def __repr__(self) -> str:
        return f"<Referral {self.referrer_id} -> {self.referred_id} {self.status.value}>"


class ProductReferral(Referral):
    product_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __mapper_args__ = {"polymorphic_identity": ReferralType.PRODUCT}


class SellerAccountReferral(Referral):
    # The referred seller's account
    seller_id: Mapped[Optional[str]] = mapped_column(
        String(64), index=True, nullable=True
    )

    __mapper_args__ = {"polymorphic_identity": ReferralType.SELLER_ACCOUNT}


# ============================================================================
# REFERRAL COMMISSIONS
# ============================================================================


class ReferralCommission(Base):
    """Commission accrued to a referrer. ``accrual_key`` is unique per referral."""

    __tablename__ = "referral_commissions"
    __table_args__ = (
        UniqueConstraint(
            "referral_id", "accrual_key", name="uq_referral_commissions_accrual"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    referral_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("referrals.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    source: Mapped[CommissionSource] = mapped_column(
        SAEnum(
            CommissionSource,
            values_callable=enum_values,
            name="referral_commission_source_enum",
        ),
        nullable=False,
    )
    # "order:<order id>" or "seller-revenue"
    accrual_key: Mapped[str] = mapped_column(String(80), nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[ReferralCommissionStatus] = mapped_column(
        SAEnum(
            ReferralCommissionStatus,
            values_callable=enum_values,
            name="referral_commission_status_enum",
        ),
        default=ReferralCommissionStatus.PENDING,
        nullable=False,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payout_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    referral = relationship("Referral", back_populates="commissions")

    __mapper_args__ = {"polymorphic_on": "source", "with_polymorphic": "*"}

    def __repr__(self) -> str:
        return f"<ReferralCommission {self.accrual_key} {self.commission_amount}>"


class OrderReferralCommission(ReferralCommission):
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, index=True, nullable=True
    )

    __mapper_args__ = {"polymorphic_identity": CommissionSource.ORDER}

    @staticmethod
    def key_for(order_id: uuid.UUID) -> str:
        return f"order:{order_id}"


class SellerRevenueReferralCommission(ReferralCommission):
    revenue_snapshot_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __mapper_args__ = {"polymorphic_identity": CommissionSource.SELLER_REVENUE}

    ACCRUAL_KEY = "seller-revenue"
