import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from rastro.config import settings
from rastro.services.tracking import refresh_active_shipments, sync_couriers

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def tracking_refresh_job():
    """Job to poll Ship24 for stale active shipments."""
    logger.info("Starting tracking refresh job")
    try:
        result = await refresh_active_shipments()
        logger.info(f"Tracking refresh complete: {result}")
    except Exception as e:
        logger.exception(f"Tracking refresh failed: {e}")


async def courier_sync_job():
    """Job to refresh the courier name table."""
    logger.info("Starting courier sync job")
    try:
        result = await sync_couriers()
        logger.info(f"Courier sync complete: {result}")
    except Exception as e:
        logger.exception(f"Courier sync failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    if not settings.ship24_api_key:
        logger.info("No Ship24 API key configured, scheduler disabled")
        return

    scheduler.add_job(
        tracking_refresh_job,
        trigger=IntervalTrigger(hours=settings.refresh_interval_hours),
        id="tracking_refresh",
        name="Refresh stale shipment tracking",
        replace_existing=True,
    )
    scheduler.add_job(
        courier_sync_job,
        trigger=IntervalTrigger(hours=settings.courier_sync_interval_hours),
        id="courier_sync",
        name="Sync courier names",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started")


def shutdown_scheduler():
    """Shutdown the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown")
