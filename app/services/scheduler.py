"""
Background scheduler running the reminder scan on a fixed interval.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from ..config import REMINDER_CHECK_INTERVAL_MINUTES, REMINDER_INITIAL_DELAY_SECONDS
from ..database import get_session
from .mailer import get_mailer
from .reminders import ReminderRunResult, run_reminder_scan

logger = logging.getLogger("taskflow.scheduler")

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def check_task_reminders() -> Optional[ReminderRunResult]:
    """Scheduled entry point. A store failure aborts this run only."""
    try:
        with get_session() as session:
            return run_reminder_scan(session, get_mailer())
    except SQLAlchemyError:
        logger.exception("Error checking task reminders; retrying on next tick")
        return None


def start_reminder_scheduler() -> None:
    """Start the reminder job: first run shortly after startup, then every interval."""
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already running")
        return

    _scheduler = BackgroundScheduler(timezone="UTC")
    _scheduler.add_job(
        check_task_reminders,
        trigger=IntervalTrigger(minutes=REMINDER_CHECK_INTERVAL_MINUTES),
        id="task_reminders",
        name="Check and send task reminders",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now().astimezone() + timedelta(seconds=REMINDER_INITIAL_DELAY_SECONDS),
    )
    _scheduler.start()
    logger.info("Reminder scheduler started (checking every %d minutes)", REMINDER_CHECK_INTERVAL_MINUTES)


def stop_reminder_scheduler() -> None:
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Reminder scheduler stopped")


def is_scheduler_running() -> bool:
    return _scheduler is not None and _scheduler.running
