"""
Status Scheduler Service

Runs the booking status sweep (auto-complete, stale pending cancellation)
every hour with APScheduler.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..database import SessionLocal
from .booking_status_updater import BookingStatusUpdater

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None
_last_run_time: Optional[datetime] = None
_last_run_result: Optional[Dict] = None

SCHEDULER_TIMEZONE = "UTC"


def run_status_updates(now: Optional[datetime] = None) -> Dict:
    """Run one sweep in its own session and remember the outcome."""
    global _last_run_time, _last_run_result

    db = SessionLocal()
    try:
        result = BookingStatusUpdater(db).run_all_auto_updates(now)
    finally:
        db.close()

    _last_run_time = datetime.utcnow()
    _last_run_result = result
    logger.info(
        f"Status sweep done: {result['completed_count']} completed, "
        f"{result['cancelled_count']} cancelled"
    )
    return result


async def run_status_update_job():
    """Job function called by the scheduler."""
    logger.info("Running scheduled booking status sweep...")
    try:
        run_status_updates()
    except Exception:
        # Keep the scheduler alive; the next hourly run retries
        logger.exception("Scheduled booking status sweep failed")


def start_status_scheduler() -> bool:
    """
    Start the hourly status sweep.

    Returns:
        True if scheduler started successfully, False otherwise
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Status scheduler is already running")
        return True

    try:
        _scheduler = AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE)
        _scheduler.add_job(
            run_status_update_job,
            CronTrigger(minute=5, timezone=SCHEDULER_TIMEZONE),
            id="booking_status_sweep",
            name="Booking status sweep (hourly)",
            replace_existing=True
        )
        _scheduler.start()
        logger.info("Status scheduler started (hourly at :05 UTC)")
        return True
    except Exception as e:
        logger.error(f"Failed to start status scheduler: {e}")
        _scheduler = None
        return False


def stop_status_scheduler() -> bool:
    global _scheduler

    if _scheduler is None:
        return True

    try:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Status scheduler stopped")
        return True
    except Exception as e:
        logger.error(f"Failed to stop status scheduler: {e}")
        return False


def get_scheduler_status() -> Dict:
    """
    Get the current status of the status scheduler.

    Returns:
        Dict with scheduler status information
    """
    status = {
        "running": False,
        "timezone": SCHEDULER_TIMEZONE,
        "last_run": None,
        "last_run_result": None,
        "jobs": []
    }

    if _scheduler is not None and _scheduler.running:
        status["running"] = True
        for job in _scheduler.get_jobs():
            status["jobs"].append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            })

    if _last_run_time:
        status["last_run"] = _last_run_time.isoformat()
    if _last_run_result:
        status["last_run_result"] = _last_run_result

    return status
