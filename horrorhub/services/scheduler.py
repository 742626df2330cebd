from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import logging

from horrorhub.database import SessionLocal
from horrorhub.services.clients import build_sync_service
from horrorhub.services.content_sync import NewToStreamingStrategy, SyncOptions
from horrorhub.services.settings import get_int_setting, get_setting
from horrorhub.services.watchmode_client import WatchmodeError

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def run_new_to_streaming_sync():
    """Daily new-to-streaming sync with its own DB session"""
    db = SessionLocal()
    try:
        service = build_sync_service(db, NewToStreamingStrategy())
        result = await service.run(SyncOptions())
        logger.info(f"✓ Scheduled new-to-streaming sync: {result.summary}")
    except WatchmodeError as e:
        logger.error(f"✗ Scheduled sync not run: {e}")
    finally:
        db.close()


def start_scheduler() -> bool:
    """Starts APScheduler if scheduler_enabled is set. Returns whether it runs."""
    db = SessionLocal()
    try:
        enabled = get_setting(db, "scheduler_enabled", False)
        hour = get_int_setting(db, "new_to_streaming_sync_hour", 4)
    finally:
        db.close()

    if isinstance(enabled, str):
        enabled = enabled.lower() in ("true", "1", "yes")
    if not enabled:
        logger.info("Scheduler disabled (scheduler_enabled=false)")
        return False

    scheduler.add_job(
        run_new_to_streaming_sync,
        trigger=CronTrigger(hour=hour, minute=0),
        id="daily_new_to_streaming_sync",
        name="Daily New-to-Streaming Sync",
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info(f"✓ Scheduler started (new-to-streaming daily at {hour:02d}:00)")
    return True


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
