"""ARQ worker for referral service background tasks.

Run with: arq services.referral_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def task_expire_referrals(ctx: dict):
    """Expire pending referrals past their window."""
    from services.referral_service.tasks import expire_referrals

    logger.info("Running: expire_referrals")
    expired = await expire_referrals()
    logger.info("expire_referrals: %d referral(s) expired", expired)
    return expired


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()

    functions = [task_expire_referrals]

    cron_jobs = [
        # Daily (3 AM UTC)
        cron(
            task_expire_referrals,
            hour=3,
            minute=0,
            run_at_startup=False,
        ),
    ]
