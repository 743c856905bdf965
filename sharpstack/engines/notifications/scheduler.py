"""
Weekly report scheduler.

Jobs:
  - Weekly report tick (cron, settings.weekly_report_day_of_week at
    settings.weekly_report_hour UTC)
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sharpstack.config import Settings
from sharpstack.engines.notifications.trigger import NotificationTrigger
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)

WEEKLY_REPORT_JOB_ID = "weekly_report"


def build_scheduler(trigger: NotificationTrigger, settings: Settings) -> Optional[AsyncIOScheduler]:
    """Scheduler with the weekly report job, or None when reports are disabled."""
    if not settings.weekly_report_enabled:
        logger.info("Weekly reports disabled, scheduler not created")
        return None

    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        trigger.run_weekly,
        trigger="cron",
        day_of_week=settings.weekly_report_day_of_week,
        hour=settings.weekly_report_hour,
        minute=0,
        id=WEEKLY_REPORT_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(
        "Weekly report job scheduled",
        extra={"day_of_week": settings.weekly_report_day_of_week, "hour": settings.weekly_report_hour},
    )
    return scheduler
