"""
Scheduler for next-day appointment reminders using APScheduler.
Once a day, at ``settings.reminder_hour`` in the clinic timezone, every
patient with a scheduled appointment on the following day is reminded.

Supports Redis backend for horizontal scaling (multiple engine instances).
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

# Redis jobstore is optional - only import if Redis is configured
try:
    from apscheduler.jobstores.redis import RedisJobStore

    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False
    RedisJobStore = None

from config import settings
from scheduling import SchedulingService, get_scheduling_service
from utils.datetime_utils import clinic_timezone
from utils.exceptions import SchedulingError
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="scheduler.log", log_dir="logs"
)

REMINDER_JOB_ID = "send_next_day_reminders"


def _create_scheduler() -> AsyncIOScheduler:
    """
    Create scheduler with Redis backend for clustering support.

    Falls back to default in-memory scheduler if Redis is not configured.
    """
    redis_url = settings.redis_url
    timezone = clinic_timezone()

    if redis_url and REDIS_AVAILABLE and RedisJobStore:
        try:
            # Parse Redis URL: redis://host:port/db or redis://:password@host:port/db
            from urllib.parse import urlparse

            parsed = urlparse(redis_url)
            host = parsed.hostname or "localhost"
            port = parsed.port or 6379
            db = int(parsed.path.lstrip("/")) if parsed.path.lstrip("/") else 0

            jobstores = {
                "default": RedisJobStore(
                    host=host,
                    port=port,
                    db=db,
                    password=parsed.password or None,
                )
            }
            logger.info(f"Scheduler using Redis backend: {host}:{port}/{db}")
            return AsyncIOScheduler(jobstores=jobstores, timezone=timezone)
        except Exception as e:
            logger.warning(
                f"Failed to initialize Redis scheduler: {e}. Falling back to in-memory scheduler."
            )
            return AsyncIOScheduler(timezone=timezone)

    if redis_url and not REDIS_AVAILABLE:
        logger.warning(
            "Redis URL configured but RedisJobStore not available. Install redis package."
        )
    logger.info("Scheduler using in-memory backend (single instance mode)")
    return AsyncIOScheduler(timezone=timezone)


scheduler = _create_scheduler()

# Service instance - injected via setup_scheduler
_service_instance: Optional[SchedulingService] = None


def set_service_instance(service: SchedulingService) -> None:
    """Set the scheduling service used by the reminder job."""
    global _service_instance
    _service_instance = service
    logger.info("Scheduling service set for scheduler")


async def send_daily_reminders() -> int:
    """
    Job body: send reminders for tomorrow's scheduled appointments.

    Returns:
        Number of reminders delivered (0 if the run failed)
    """
    service = _service_instance or get_scheduling_service()

    try:
        return await service.send_next_day_reminders()
    except SchedulingError as e:
        logger.error(f"Reminder run failed: {e.message}", exc_info=True)
        return 0


def setup_scheduler(service: Optional[SchedulingService] = None) -> None:
    """Register the daily reminder job and start the scheduler.

    Args:
        service: Optional service to inject. If None, the global service is used
    """
    if service:
        set_service_instance(service)

    scheduler.add_job(
        send_daily_reminders,
        trigger=CronTrigger(hour=settings.reminder_hour, minute=0, timezone=clinic_timezone()),
        id=REMINDER_JOB_ID,
        name="Send next-day appointment reminders",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started - reminders daily at {settings.reminder_hour:02d}:00")


def shutdown_scheduler() -> None:
    """Shutdown the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
