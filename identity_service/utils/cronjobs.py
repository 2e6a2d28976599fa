from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from identity_service.DB.database import AsyncSessionLocal
from identity_service.config import settings
from identity_service.services.tokens import purge_expired_refresh_tokens
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)
scheduler = AsyncIOScheduler()


async def run_purge_expired_refresh_tokens():
    async with AsyncSessionLocal() as db:
        deleted = await purge_expired_refresh_tokens(db)
    logger.info(f"Purged {deleted} expired refresh tokens.")


def start_cron_jobs():
    try:
        scheduler.add_job(
            func=run_purge_expired_refresh_tokens,
            trigger=IntervalTrigger(hours=settings.TOKEN_CLEANUP_INTERVAL_HOURS),
            id="purge_expired_refresh_tokens",
            name="Delete expired refresh tokens",
            replace_existing=True,
        )
        if not scheduler.running:
            scheduler.start()
        logger.info(f"Cron job scheduled to run every {settings.TOKEN_CLEANUP_INTERVAL_HOURS} hours.")
    except JobLookupError as e:
        logger.error(f"Failed to schedule job: {e}")


def stop_cron_jobs():
    if scheduler.running:
        scheduler.shutdown(wait=False)
