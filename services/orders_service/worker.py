"""ARQ worker for orders service background tasks.

Run with: arq services.orders_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def task_reconcile_commissions(ctx: dict):
    """Backfill commissions missing for delivered orders."""
    from services.orders_service.tasks import reconcile_commissions

    logger.info("Running: reconcile_commissions")
    return await reconcile_commissions()


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()

    functions = [task_reconcile_commissions]

    cron_jobs = [
        # Hourly, after the top of the hour
        cron(
            task_reconcile_commissions,
            minute=5,
            run_at_startup=False,
        ),
    ]
