"""
Scheduled tasks for stock synchronisation.
This module sets up the periodic bulk inventory refresh that runs within the FastAPI application.
"""

import logging
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from app.core.config import Settings, get_settings
from app.integrations.stock_manager import StockManager

logger = logging.getLogger(__name__)


async def refresh_inventory_task(manager: StockManager):
    """Task to reconcile every cached product with the product service"""
    try:
        logger.info("=== SCHEDULED STOCK REFRESH STARTING ===")
        results = await manager.refresh_all_products()
        refreshed = sum(1 for quantity in results.values() if quantity is not None)
        logger.info(f"Scheduled stock refresh completed: {refreshed}/{len(results)} products")
    except Exception as e:
        logger.exception(f"Error in scheduled stock refresh: {str(e)}")


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler(manager: StockManager, settings: Optional[Settings] = None) -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    settings = settings or get_settings()
    scheduler = AsyncIOScheduler()

    # Add job event listeners
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    interval = settings.STOCK_REFRESH_INTERVAL_MINUTES
    if interval > 0:
        scheduler.add_job(
            refresh_inventory_task,
            IntervalTrigger(minutes=interval),
            args=[manager],
            id="refresh_inventory",
            name="Refresh Inventory",
            replace_existing=True,
            max_instances=1,  # Only one refresh at a time
            coalesce=True,
        )
        logger.info(f"Scheduled stock refresh every {interval} minute(s)")
    else:
        logger.info("Scheduled stock refresh is disabled. Set STOCK_REFRESH_INTERVAL_MINUTES to enable")

    return scheduler


async def start_scheduler(scheduler: AsyncIOScheduler):
    """Start the scheduler"""
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")

        jobs = scheduler.get_jobs()
        if jobs:
            logger.info(f"Active scheduled jobs: {len(jobs)}")
            for job in jobs:
                logger.info(f"  - {job.name}: {job.trigger}")
        else:
            logger.info("No scheduled jobs configured")


async def stop_scheduler(scheduler: AsyncIOScheduler):
    """Stop the scheduler gracefully"""
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped successfully")
