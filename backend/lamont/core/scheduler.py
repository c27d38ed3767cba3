"""
Background scheduler for periodic tasks.

This module manages background jobs that run on a schedule:
- Purge closed registration rate-limit windows: every RATE_LIMIT_PURGE_MINUTES
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from lamont.core.config import settings
from lamont.core.rate_limit import RegistrationRateLimiter
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def purge_rate_limit_windows_job(limiter: RegistrationRateLimiter):
    """
    Drop rate-limit windows that have already closed.

    Closed windows would be reset on the next hit anyway; purging only keeps
    the map from growing with one entry per address ever seen.
    """
    try:
        removed = limiter.purge_expired()
        if removed:
            logger.info(f"Purged {removed} expired registration rate-limit windows")
    except Exception as e:
        logger.error(f"Error in purge_rate_limit_windows_job: {str(e)}")


def start_scheduler(limiter: RegistrationRateLimiter):
    """
    Start the background scheduler.

    Called from the FastAPI lifespan on startup.
    """
    if not scheduler.running:
        scheduler.add_job(
            purge_rate_limit_windows_job,
            trigger=IntervalTrigger(minutes=settings.RATE_LIMIT_PURGE_MINUTES),
            args=[limiter],
            id="purge_rate_limit_windows",
            name="Purge registration rate-limit windows",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            f"Background scheduler started. Rate-limit purge scheduled every "
            f"{settings.RATE_LIMIT_PURGE_MINUTES} minutes."
        )


def stop_scheduler():
    """
    Stop the background scheduler.

    Called from the FastAPI lifespan on shutdown.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
