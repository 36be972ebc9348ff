"""
Reminder scan: find tasks approaching their due date and email their owners,
once per tier (24h, 12h) per task.

The store query uses coarse windows around ``now``; the precise tier band is
checked in process on rounded hours-until-due. A failed send leaves the task's
flags alone so the next scan picks it up again.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models import Task, User
from .mailer import Mailer

logger = logging.getLogger("taskflow.reminders")


@dataclass(frozen=True)
class ReminderTier:
    hours: int
    window: timedelta
    band: Tuple[int, int]
    stale_after: timedelta


TIER_24H = ReminderTier(
    hours=24,
    window=timedelta(hours=24),
    band=(22, 26),
    stale_after=timedelta(hours=23),
)
TIER_12H = ReminderTier(
    hours=12,
    window=timedelta(hours=12),
    band=(10, 14),
    stale_after=timedelta(hours=11),
)


@dataclass
class ReminderRunResult:
    sent: int = 0
    failed: int = 0


def hours_until_due(task: Task, now: datetime) -> Optional[int]:
    """Whole hours until the task is due, halves rounded up."""
    if task.due_date is None:
        return None
    hours = (task.due_date - now).total_seconds() / 3600
    return math.floor(hours + 0.5)


def in_band(tier: ReminderTier, hours: Optional[int]) -> bool:
    if hours is None:
        return False
    low, high = tier.band
    return low <= hours <= high


def _due_within(tier: ReminderTier, now: datetime):
    return (
        Task.completed.is_(False),
        Task.due_date >= now - tier.window,
        Task.due_date <= now + tier.window,
    )


def find_24h_candidates(db: Session, now: datetime) -> List[Tuple[Task, User]]:
    """Incomplete tasks due within a day either way that have no reminder yet,
    or whose last reminder is older than 23 hours."""
    return (
        db.query(Task, User)
        .join(User, Task.user_id == User.id)
        .filter(
            *_due_within(TIER_24H, now),
            or_(
                Task.reminder_sent.is_(False),
                Task.reminder_sent.is_(None),
                Task.last_reminder_sent < now - TIER_24H.stale_after,
            ),
        )
        .all()
    )


def find_12h_candidates(db: Session, now: datetime) -> List[Tuple[Task, User]]:
    """Incomplete tasks due within 12 hours either way whose last reminder is
    older than 11 hours. A task never reminded has a NULL timestamp and does
    not match."""
    return (
        db.query(Task, User)
        .join(User, Task.user_id == User.id)
        .filter(
            *_due_within(TIER_12H, now),
            Task.last_reminder_sent < now - TIER_12H.stale_after,
        )
        .all()
    )


def _dispatch(
    db: Session,
    mailer: Mailer,
    tier: ReminderTier,
    candidates: List[Tuple[Task, User]],
    now: datetime,
    result: ReminderRunResult,
) -> None:
    for task, user in candidates:
        if not user.email:
            continue
        if not in_band(tier, hours_until_due(task, now)):
            continue

        if not mailer.send_task_reminder(user.email, user.name, task, tier.hours):
            result.failed += 1
            continue

        if tier is TIER_24H:
            task.reminder_sent = True
        task.last_reminder_sent = now
        db.commit()
        result.sent += 1


def run_reminder_scan(db: Session, mailer: Mailer, now: Optional[datetime] = None) -> ReminderRunResult:
    """Run one scan at ``now`` (naive UTC). Store errors propagate."""
    now = now or datetime.utcnow()
    logger.info("Checking for task reminders at %s", now.isoformat())

    # Both candidate sets are read before either tier marks anything
    due_24h = find_24h_candidates(db, now)
    due_12h = find_12h_candidates(db, now)

    result = ReminderRunResult()
    _dispatch(db, mailer, TIER_24H, due_24h, now, result)
    _dispatch(db, mailer, TIER_12H, due_12h, now, result)

    if result.sent:
        logger.info("Sent %d task reminder(s)", result.sent)
    else:
        logger.info("No reminders needed at this time")
    if result.failed:
        logger.warning("%d reminder(s) failed and will be retried next run", result.failed)
    return result
