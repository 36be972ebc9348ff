from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_serializer
from pydantic.alias_generators import to_camel

from ..models.task import Priority
from .task import as_utc_iso


class UpcomingTask(BaseModel):
    id: str
    title: str
    due_date: datetime
    priority: Priority
    hours_until_due: int
    reminder_sent: bool = False
    last_reminder_sent: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_serializer("due_date", "last_reminder_sent")
    def _utc(self, value: Optional[datetime]) -> Optional[str]:
        return as_utc_iso(value)


class NotificationStats(BaseModel):
    total_upcoming_tasks: int
    tasks_in_next24_hours: int
    tasks_in_next12_hours: int
    upcoming_tasks: List[UpcomingTask]

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ReminderTriggerResponse(BaseModel):
    message: str
    reminders_sent: int

    class Config:
        alias_generator = to_camel
        populate_by_name = True
