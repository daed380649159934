"""Periodic referral maintenance jobs."""

from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.referral_service.services.referrals import expire_stale_referrals

logger = get_logger(__name__)


async def expire_referrals() -> int:
    """Expire pending referrals whose window has passed."""
    async for db in get_async_db():
        return await expire_stale_referrals(db)
    return 0
