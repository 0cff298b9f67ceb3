"""Background jobs: enrollment status refresh and notification polling."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from eventmatch.core.config import settings
from eventmatch.core.database import session_factory
from eventmatch.matching.enrollments import mark_past_enrollments_attended

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def enrollment_status_job():
    """Mark enrollments of past events as attended."""
    try:
        with session_factory() as session:
            updated = mark_past_enrollments_attended(session)
            logger.info(f"Enrollment status refresh completed: {updated} updated")
    except Exception as e:
        logger.error(f"Enrollment status refresh failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        enrollment_status_job,
        trigger=IntervalTrigger(minutes=settings.enrollment_refresh_minutes),
        id="enrollment_status_refresh",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, refreshing enrollments every {settings.enrollment_refresh_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
