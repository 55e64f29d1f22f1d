"""Scheduler service for background jobs."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from structlog import get_logger

from hemis_bot.services.birthdays import run_scheduled_birthday_greetings
from hemis_bot.services.container import BotServices

logger = get_logger()

BIRTHDAY_JOB_ID = "birthday_greetings"
CACHE_REFRESH_JOB_ID = "refresh_employee_cache"


async def refresh_employee_cache(services: BotServices) -> None:
    """Interval job: refetch the directory so commands rarely wait on HEMIS."""
    try:
        await services.cache.refresh(force=True)
    except Exception:
        logger.exception("scheduled_cache_refresh_failed")


def create_scheduler(services: BotServices) -> AsyncIOScheduler:
    """
    Build a scheduler with all background jobs.

    Jobs:
    - birthday_greetings: CRON_TIME in TIMEZONE (default 09:00 Asia/Tashkent)
    - refresh_employee_cache: every CACHE_TTL_HOURS

    Both use coalesce=True and max_instances=1 to prevent overlaps.
    """
    settings = services.settings
    scheduler = AsyncIOScheduler(timezone=settings.tz)

    scheduler.add_job(
        run_scheduled_birthday_greetings,
        trigger=CronTrigger.from_crontab(settings.cron_time, timezone=settings.tz),
        kwargs={"services": services},
        id=BIRTHDAY_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    scheduler.add_job(
        refresh_employee_cache,
        trigger="interval",
        minutes=max(1, int(settings.cache_ttl_hours * 60)),
        kwargs={"services": services},
        id=CACHE_REFRESH_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    logger.info(
        "scheduler_configured",
        jobs=2,
        cron_time=settings.cron_time,
        timezone=settings.timezone,
    )
    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Start the scheduler."""
    scheduler.start()
    logger.info("scheduler_started")


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
    logger.info("scheduler_shutdown")
