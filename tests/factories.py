"""
Factories for valid test data.

Request payloads are plain dicts (or pydantic models via ``.build()``);
ORM factories produce insertable instances. Override any field via kwargs.

Usage:
    order = await create_order(db_session, OrderCreateFactory.build())
    code = ReferralCodeFactory.create(user_id="user-1")
    db_session.add(code)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_code() -> str:
    return uuid.uuid4().hex[:8].upper()


# ---------------------------------------------------------------------------
# Orders Service
# ---------------------------------------------------------------------------


class OrderItemFactory:
    @staticmethod
    def payload(**overrides) -> dict:
        defaults = {
            "product_id": f"prod-{uuid.uuid4().hex[:6]}",
            "seller_id": "seller-a",
            "product_name": "Handmade Basket",
            "quantity": 1,
            "unit_price": "10.00",
        }
        defaults.update(overrides)
        return defaults


class OrderCreateFactory:
    """Checkout hand-off payloads."""

    @staticmethod
    def payload(items=None, **overrides) -> dict:
        defaults = {
            "user_id": f"buyer-{uuid.uuid4().hex[:6]}",
            "customer_email": "buyer@example.com",
            "customer_first_name": "Ada",
            "customer_last_name": "Buyer",
            "shipping_address": {"line1": "1 Market Street", "city": "Lagos"},
            "items": items or [OrderItemFactory.payload()],
        }
        defaults.update(overrides)
        return defaults

    @staticmethod
    def build(items=None, **overrides):
        from services.orders_service.schemas.order import OrderCreate

        return OrderCreate(**OrderCreateFactory.payload(items=items, **overrides))

    @staticmethod
    def two_sellers(**overrides):
        """Seller A: 2 x 10.00, seller B: 1 x 30.00."""
        return OrderCreateFactory.build(
            items=[
                OrderItemFactory.payload(
                    product_id="prod-a", seller_id="seller-a", quantity=2, unit_price="10.00"
                ),
                OrderItemFactory.payload(
                    product_id="prod-b", seller_id="seller-b", quantity=1, unit_price="30.00"
                ),
            ],
            **overrides,
        )


# ---------------------------------------------------------------------------
# Referral Service
# ---------------------------------------------------------------------------


class ReferralCodeFactory:
    @staticmethod
    def create(type="product", **overrides):
        from services.referral_service.models import (
            ProductReferralCode,
            SellerAccountReferralCode,
        )

        defaults = {
            "id": _uuid(),
            "user_id": "user-referrer",
            "code": _unique_code(),
            "commission_rate": Decimal("5.00"),
            "is_active": True,
            "usage_count": 0,
            "max_usage": None,
            "expires_at": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        if type == "product":
            defaults["product_id"] = "prod-1"
            model = ProductReferralCode
        else:
            defaults["commission_rate"] = Decimal("10.00")
            model = SellerAccountReferralCode
        defaults.update(overrides)
        return model(**defaults)


class ReferralFactory:
    @staticmethod
    def create(type="product", **overrides):
        from services.referral_service.models import (
            ProductReferral,
            ReferralStatus,
            SellerAccountReferral,
        )

        defaults = {
            "id": _uuid(),
            "referrer_id": "user-referrer",
            "referred_id": f"user-{uuid.uuid4().hex[:8]}",
            "status": ReferralStatus.PENDING,
            "referral_code": _unique_code(),
            "commission_rate": Decimal("5.00"),
            "total_commission": Decimal("0.00"),
            "expires_at": _now() + timedelta(days=30),
            "created_at": _now(),
            "updated_at": _now(),
        }
        if type == "product":
            defaults["product_id"] = "prod-1"
            model = ProductReferral
        else:
            defaults["commission_rate"] = Decimal("10.00")
            defaults["seller_id"] = None
            model = SellerAccountReferral
        defaults.update(overrides)
        return model(**defaults)
