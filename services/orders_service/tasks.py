"""Periodic order maintenance jobs."""

from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.orders_service.services.commissions import reconcile_missing_commissions

logger = get_logger(__name__)


async def reconcile_commissions() -> dict:
    """Create commissions for delivered orders the status update path missed."""
    async for db in get_async_db():
        result = await reconcile_missing_commissions(db)
        if result["failed"]:
            logger.warning(
                "Commission reconciliation left %d order(s) unrepaired",
                len(result["failed"]),
            )
        return result
    return {"scanned": 0, "repaired": 0, "failed": []}
