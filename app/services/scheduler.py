"""
APScheduler Configuration

Manages scheduled housekeeping for the kennel board: expiring stored
operation ids and logging utilization alerts for the day.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import async_sessionmaker

from app import config
from app.database import AsyncSessionLocal
from app.models.engine_operation import EngineOperation
from app.services.occupancy_calculator import BUCKET_FULL, BUCKET_HIGH
from app.services.occupancy_service import get_occupancy_service

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def purge_expired_operations(
    days: int = None,
    session_factory: async_sessionmaker = None,
) -> int:
    """
    Delete stored operation ids older than the retention window.

    Returns:
        Number of operation records deleted
    """
    days = config.OPERATION_RETENTION_DAYS if days is None else days
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)

    async with (session_factory or AsyncSessionLocal)() as session:
        result = await session.execute(
            delete(EngineOperation).where(EngineOperation.created_at < cutoff)
        )
        await session.commit()

    deleted_count = result.rowcount
    logger.info(f"Deleted {deleted_count} operation ids older than {days} days")
    return deleted_count


async def log_utilization_alerts(day: date = None, service=None) -> Dict[str, Any]:
    """
    Check today's occupancy and log busy, full and over-capacity kennels.

    Returns:
        Summary with kennels checked and the ids in each alert level
    """
    day = day or date.today()
    service = service or get_occupancy_service()
    snapshot = await service.occupancy(day, day)

    high, full, over = [], [], []
    for row in snapshot["kennels"]:
        if row["utilization_percent"] > 100:
            over.append(row["kennel_id"])
            logger.error(
                f"Kennel {row['kennel_id']} over capacity on {day}: "
                f"{row['occupied']}/{row['capacity']}"
            )
        elif row["bucket"] == BUCKET_FULL:
            full.append(row["kennel_id"])
        elif row["bucket"] == BUCKET_HIGH:
            high.append(row["kennel_id"])

    summary = snapshot["summary"]
    if summary["bucket"] == BUCKET_FULL:
        logger.critical(f"Facility FULL on {day}: {summary['overall_utilization_percent']}% utilization")
    elif summary["bucket"] == BUCKET_HIGH:
        logger.warning(f"Facility busy on {day}: {summary['overall_utilization_percent']}% utilization")

    logger.info(
        f"Utilization check {day}: {len(snapshot['kennels'])} kennels, "
        f"{len(full)} full, {len(high)} high, {len(over)} over capacity"
    )
    return {
        "date": day,
        "kennels_checked": len(snapshot["kennels"]),
        "high": high,
        "full": full,
        "over_capacity": over,
    }


async def run_operation_cleanup():
    """Daily job wrapper for purge_expired_operations."""
    try:
        await purge_expired_operations()
    except Exception as e:
        logger.error(f"Failed to purge operation ids: {e}", exc_info=True)


async def run_utilization_check():
    """Hourly job wrapper for log_utilization_alerts."""
    try:
        await log_utilization_alerts()
    except Exception as e:
        logger.error(f"Failed to check kennel utilization: {e}", exc_info=True)


def configure_scheduler():
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Operation id cleanup: Daily at 03:00
        - Utilization check: Every hour at :05
    """
    scheduler.add_job(
        run_operation_cleanup,
        trigger=CronTrigger(hour=3, minute=0),
        id='operation_cleanup',
        name='Purge Expired Operation Ids',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1  # Only one instance at a time
    )

    scheduler.add_job(
        run_utilization_check,
        trigger=CronTrigger(hour='*', minute=5),
        id='utilization_check',
        name='Check Kennel Utilization',
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )

    logger.info("Scheduler configured with operation cleanup and utilization jobs")


def start_scheduler():
    """Start the APScheduler"""
    configure_scheduler()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
