"""Order request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from services.orders_service.models.enums import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

# ---------------------------------------------------------------------------
# Checkout hand-off
# ---------------------------------------------------------------------------


class OrderItemCreate(BaseModel):
    product_id: str
    seller_id: str
    product_name: str
    product_slug: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0)
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    selected_variants: Optional[dict] = None
    product_snapshot: Optional[dict] = None
    thumbnail_image: Optional[str] = None


class OrderCreate(BaseModel):
    """Order as priced by checkout. Totals default to the item sums."""

    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    customer_email: EmailStr
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    subtotal: Optional[Decimal] = Field(None, ge=0)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    shipping_amount: Decimal = Field(Decimal("0"), ge=0)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_transaction_id: Optional[str] = None
    shipping_address: dict
    billing_address: Optional[dict] = None
    notes: Optional[str] = None
    items: list[OrderItemCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_buyer(self):
        if not self.user_id and not self.guest_id:
            raise ValueError("Either user_id or guest_id is required")
        return self


# ---------------------------------------------------------------------------
# Seller actions
# ---------------------------------------------------------------------------


class AcceptOrderRequest(BaseModel):
    order_id: uuid.UUID
    notes: Optional[str] = None
    estimated_processing_time: Optional[int] = Field(None, ge=1, le=30)


class UpdateOrderStatusRequest(BaseModel):
    order_id: uuid.UUID
    status: OrderStatus
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class OrderItemResponse(BaseModel):
    id: uuid.UUID
    product_id: str
    seller_id: str
    product_name: str
    sku: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    selected_variants: Optional[dict] = None
    thumbnail_image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderStatusHistoryResponse(BaseModel):
    id: uuid.UUID
    sequence: int
    previous_status: Optional[OrderStatus] = None
    status: OrderStatus
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    notification_sent: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    customer_email: str
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    shipping_address: dict
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse] = []
    status_history: list[OrderStatusHistoryResponse] = []

    model_config = ConfigDict(from_attributes=True)


class SellerOrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    limit: int


class OrderHistoryAuditResponse(BaseModel):
    order_id: uuid.UUID
    order_number: str
    status: OrderStatus
    history: list[OrderStatusHistoryResponse]
    valid: bool
    problems: list[str] = []


# ---------------------------------------------------------------------------
# Internal read-through
# ---------------------------------------------------------------------------


class OrderLineResponse(BaseModel):
    product_id: str
    seller_id: str
    quantity: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderLinesResponse(BaseModel):
    order_id: uuid.UUID
    order_number: str
    status: OrderStatus
    lines: list[OrderLineResponse]


class SellerRevenueResponse(BaseModel):
    seller_id: str
    revenue: Decimal
    order_count: int
