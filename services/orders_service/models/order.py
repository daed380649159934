"""Order, line item and status history models."""

import secrets
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType, Money
from services.orders_service.models.enums import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# Shared so every column using it maps to the same database enum type.
ORDER_STATUS_ENUM = SAEnum(
    OrderStatus, values_callable=enum_values, name="order_status_enum"
)

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class Order(Base):
    """Marketplace orders."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "user_id IS NOT NULL OR guest_id IS NOT NULL",
            name="ck_orders_buyer_reference",
        ),
        Index("ix_orders_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    order_number: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )

    # Buyer (user_id for logged in, guest_id for guests)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(64), index=True, nullable=True
    )
    guest_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_first_name: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    customer_last_name: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )

    # Pricing, computed by checkout
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Money, default=Decimal("0"), server_default="0"
    )
    shipping_amount: Mapped[Decimal] = mapped_column(
        Money, default=Decimal("0"), server_default="0"
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Money, default=Decimal("0"), server_default="0"
    )
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        ORDER_STATUS_ENUM,
        default=OrderStatus.PENDING,
        server_default="pending",
    )

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="payment_status_enum",
        ),
        default=PaymentStatus.PENDING,
        server_default="pending",
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="payment_method_enum",
        ),
        default=PaymentMethod.CASH_ON_DELIVERY,
        server_default="cash_on_delivery",
    )
    payment_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )

    # {"first_name": ..., "street": ..., "city": ..., "country": ...}
    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False)
    billing_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    estimated_delivery_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Optimistic lock, bumped on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at",
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.sequence",
    )

    __mapper_args__ = {"version_id_col": version}

    @staticmethod
    def generate_order_number() -> str:
        """Generate an order number like ORD-20260104-A1B2C3."""
        date_part = utc_now().strftime("%Y%m%d")
        random_part = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(6))
        return f"ORD-{date_part}-{random_part}"

    def seller_ids(self) -> list[str]:
        """Distinct sellers in item order."""
        seen: dict[str, None] = {}
        for item in self.items:
            seen.setdefault(item.seller_id, None)
        return list(seen)

    def __repr__(self):
        return f"<Order {self.order_number} {self.status.value}>"


class OrderItem(Base):
    """Order line items (snapshot at order time, immutable)."""

    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Owner of the product at purchase time
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_slug: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Money, default=Decimal("0"), server_default="0"
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Money, default=Decimal("0"), server_default="0"
    )
    selected_variants: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    product_snapshot: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    thumbnail_image: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.product_name} x{self.quantity}>"


class OrderStatusHistory(Base):
    """Append-only audit trail of order status changes."""

    __tablename__ = "order_status_history"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Position in the order's chain; created_at can tie within one request.
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_status: Mapped[Optional[OrderStatus]] = mapped_column(
        ORDER_STATUS_ENUM, nullable=True
    )
    status: Mapped[OrderStatus] = mapped_column(ORDER_STATUS_ENUM, nullable=False)
    changed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notification_sent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    order = relationship("Order", back_populates="status_history")

    def __repr__(self):
        prev = self.previous_status.value if self.previous_status else None
        return f"<OrderStatusHistory {prev} -> {self.status.value}>"
