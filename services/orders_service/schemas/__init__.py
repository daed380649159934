"""Orders Service schemas package."""

from services.orders_service.schemas.commission import (  # noqa: F401
    CancelCommissionRequest,
    CommissionListResponse,
    CommissionResponse,
    CommissionSummaryResponse,
    MarkCommissionPaidRequest,
    ReconcileResponse,
)
from services.orders_service.schemas.notification import (  # noqa: F401
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from services.orders_service.schemas.order import (  # noqa: F401
    AcceptOrderRequest,
    OrderCreate,
    OrderHistoryAuditResponse,
    OrderItemCreate,
    OrderItemResponse,
    OrderLineResponse,
    OrderLinesResponse,
    OrderResponse,
    OrderStatusHistoryResponse,
    SellerOrderListResponse,
    SellerRevenueResponse,
    UpdateOrderStatusRequest,
)
