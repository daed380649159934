"""FastAPI application for the Orders Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.orders_service.routers.admin import router as admin_router
from services.orders_service.routers.internal import router as internal_router
from services.orders_service.routers.seller import router as seller_router


def create_app() -> FastAPI:
    """Create and configure the Orders Service FastAPI app."""
    app = FastAPI(
        title="Marketplace Orders Service",
        version="0.1.0",
        description="Order lifecycle, seller notifications and platform commissions.",
    )
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "orders"}

    # Seller-facing routes
    app.include_router(seller_router)

    # Admin routes
    app.include_router(admin_router)

    # Internal service-to-service routes (not proxied by gateway)
    app.include_router(internal_router)

    return app


app = create_app()
