"""Internal read-through client for the orders service.

The referral service never queries order tables; it reads delivered orders and
seller revenue over the orders service's ``/internal`` API with a short-lived
service-role token.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx
from libs.auth.dependencies import _service_role_jwt
from libs.common.config import get_settings
from libs.common.logging import get_logger, get_request_id
from libs.common.middleware import CALLER_SERVICE_HEADER, REQUEST_ID_HEADER

logger = get_logger(__name__)


def internal_headers(calling_service: str) -> dict[str, str]:
    """Service-role bearer token plus the correlation headers."""
    headers = {
        "Authorization": f"Bearer {_service_role_jwt(calling_service)}",
        CALLER_SERVICE_HEADER: calling_service,
    }
    request_id = get_request_id()
    if request_id:
        headers[REQUEST_ID_HEADER] = request_id
    return headers


async def orders_get(
    path: str,
    *,
    calling_service: str,
    timeout: Optional[float] = None,
) -> httpx.Response:
    """GET ``path`` on the orders service.

    Raises:
        httpx.RequestError on connection failures.
    """
    settings = get_settings()
    started = time.perf_counter()
    async with httpx.AsyncClient(
        base_url=settings.ORDERS_SERVICE_URL,
        timeout=timeout or settings.INTERNAL_HTTP_TIMEOUT,
    ) as client:
        response = await client.get(path, headers=internal_headers(calling_service))

    if response.status_code >= 500:
        logger.warning(
            "Orders service read %s returned %s",
            path,
            response.status_code,
            extra={"extra_fields": {
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            }},
        )
    return response


async def get_order_lines(order_id: str, *, calling_service: str) -> Optional[dict]:
    """Fetch an order's status and line items.

    Returns dict with {order_id, order_number, status, lines: [...]} or None.
    """
    resp = await orders_get(
        f"/internal/orders/{order_id}/lines", calling_service=calling_service
    )
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json()


async def get_seller_revenue(seller_id: str, *, calling_service: str) -> dict:
    """Fetch delivered revenue for a seller.

    Returns dict with {seller_id, revenue, order_count}.
    """
    resp = await orders_get(
        f"/internal/sellers/{seller_id}/revenue", calling_service=calling_service
    )
    resp.raise_for_status()
    return resp.json()
