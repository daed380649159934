"""Read-through access to order data owned by the orders service.

Accrual code depends on the ``OrderSource`` / ``SellerSource`` protocols only;
the HTTP implementations are wired in as FastAPI dependencies and replaced in
tests through ``app.dependency_overrides``.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Protocol

from libs.common.currency import line_total, to_money
from libs.common.enums import OrderStatus
from libs.common.service_client import get_order_lines, get_seller_revenue

CALLING_SERVICE = "referral_service"


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    seller_id: str
    quantity: int
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return line_total(self.quantity, self.unit_price)


@dataclass(frozen=True)
class OrderSnapshot:
    order_id: uuid.UUID
    status: str
    lines: tuple[OrderLine, ...] = field(default_factory=tuple)


class OrderSource(Protocol):
    async def get_order(self, order_id: uuid.UUID) -> Optional[OrderSnapshot]:
        ...


class SellerSource(Protocol):
    async def get_revenue(self, seller_id: str) -> Decimal:
        ...


class HttpOrderSource:
    async def get_order(self, order_id: uuid.UUID) -> Optional[OrderSnapshot]:
        payload = await get_order_lines(str(order_id), calling_service=CALLING_SERVICE)
        if payload is None:
            return None
        return OrderSnapshot(
            order_id=uuid.UUID(str(payload["order_id"])),
            status=OrderStatus(payload["status"]).value,
            lines=tuple(
                OrderLine(
                    product_id=str(line["product_id"]),
                    seller_id=str(line["seller_id"]),
                    quantity=int(line["quantity"]),
                    unit_price=to_money(line["unit_price"]),
                )
                for line in payload.get("lines", [])
            ),
        )


class HttpSellerSource:
    async def get_revenue(self, seller_id: str) -> Decimal:
        payload = await get_seller_revenue(seller_id, calling_service=CALLING_SERVICE)
        return to_money(payload.get("revenue") or 0)


def get_order_source() -> OrderSource:
    return HttpOrderSource()


def get_seller_source() -> SellerSource:
    return HttpSellerSource()
