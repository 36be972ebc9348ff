import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Task as TaskModel, User
from ..schemas.notification import NotificationStats, ReminderTriggerResponse
from ..services.mailer import Mailer, get_mailer
from ..services.reminders import hours_until_due, run_reminder_scan
from .auth import get_current_user

logger = logging.getLogger("taskflow.notifications")

router = APIRouter()


@router.get("/notification-stats", response_model=NotificationStats)
def notification_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upcoming incomplete tasks of the caller with their reminder state."""
    now = datetime.utcnow()
    upcoming = (
        db.query(TaskModel)
        .filter(
            TaskModel.user_id == current_user.id,
            TaskModel.completed.is_(False),
            TaskModel.due_date >= now,
        )
        .order_by(TaskModel.due_date.asc())
        .all()
    )

    def within(task: TaskModel, hours: int) -> bool:
        remaining = (task.due_date - now).total_seconds() / 3600
        return 0 < remaining <= hours

    return {
        "total_upcoming_tasks": len(upcoming),
        "tasks_in_next24_hours": sum(1 for task in upcoming if within(task, 24)),
        "tasks_in_next12_hours": sum(1 for task in upcoming if within(task, 12)),
        "upcoming_tasks": [
            {
                "id": task.id,
                "title": task.title,
                "due_date": task.due_date,
                "priority": task.priority,
                "hours_until_due": hours_until_due(task, now),
                "reminder_sent": bool(task.reminder_sent),
                "last_reminder_sent": task.last_reminder_sent,
            }
            for task in upcoming
        ],
    }


@router.post("/trigger-reminders", response_model=ReminderTriggerResponse)
def trigger_reminders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Run one reminder scan synchronously, for operational testing."""
    logger.info("Manual reminder scan requested by user %s", current_user.id)
    try:
        result = run_reminder_scan(db, mailer)
    except SQLAlchemyError:
        logger.exception("Manual reminder trigger failed")
        raise HTTPException(status_code=500, detail="Error triggering reminders")
    return {"message": "Reminder check completed successfully", "reminders_sent": result.sent}
