import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedsync.config import Settings
from feedsync.services.sync_manager import run_stock_sync

logger = logging.getLogger(__name__)


async def scheduled_stock_sync(settings: Settings):
    try:
        await run_stock_sync(settings, since_minutes=settings.STOCK_SYNC_INTERVAL_MINUTES)
    except Exception:
        logger.exception("Scheduled stock sync failed")


def start_scheduler(settings: Settings) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        scheduled_stock_sync,
        "interval",
        minutes=settings.STOCK_SYNC_INTERVAL_MINUTES,
        args=[settings],
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Stock sync scheduled every {settings.STOCK_SYNC_INTERVAL_MINUTES} min")
    return scheduler
