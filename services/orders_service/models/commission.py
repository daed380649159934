"""Platform commission owed by a seller for a delivered order."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, Money, Rate
from services.orders_service.models.enums import CommissionStatus, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

_LIVE_COMMISSION = text("status <> 'cancelled'")


class Commission(Base):
    """One live row per (order, seller); cancelled rows do not count."""

    __tablename__ = "commissions"
    __table_args__ = (
        Index(
            "uq_commissions_order_seller_live",
            "order_id",
            "seller_id",
            unique=True,
            postgresql_where=_LIVE_COMMISSION,
            sqlite_where=_LIVE_COMMISSION,
        ),
        Index("ix_commissions_seller_status", "seller_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Seller-attributed order amount, not the order total
    order_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    status: Mapped[CommissionStatus] = mapped_column(
        SAEnum(
            CommissionStatus,
            values_callable=enum_values,
            name="commission_status_enum",
        ),
        default=CommissionStatus.PENDING,
        server_default="pending",
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payout_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    order = relationship("Order")

    def __repr__(self):
        return f"<Commission {self.seller_id} {self.commission_amount} {self.status.value}>"
