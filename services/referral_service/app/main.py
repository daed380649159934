"""FastAPI application for the Referral Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.referral_service.routers.referrals import router as referrals_router


def create_app() -> FastAPI:
    """Create and configure the Referral Service FastAPI app."""
    app = FastAPI(
        title="Marketplace Referral Service",
        version="0.1.0",
        description="Referral codes, referral lifecycle and referral commissions.",
    )
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "referral"}

    # Gateway: /api/v1/referrals/{path} -> /referrals/{path}
    app.include_router(referrals_router)

    return app


app = create_app()
