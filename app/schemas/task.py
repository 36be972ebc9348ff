from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from ..models.task import Priority


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC; offsets are converted first."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc_iso(value: Optional[datetime]) -> Optional[str]:
    """Render a stored naive-UTC timestamp as ISO 8601 with a Z suffix."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class TaskBase(BaseModel):
    """Base task schema with common fields."""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Priority = Priority.MEDIUM

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TaskCreate(TaskBase):
    """Schema for creating new tasks."""

    class Config:
        extra = "forbid"

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def _normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class TaskUpdate(BaseModel):
    """Schema for updating existing tasks. Only fields sent are applied."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    completed: Optional[bool] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"

    @field_validator("title", "priority", "completed")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field may be omitted but not null")
        return value

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def _normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class Task(TaskBase):
    """Complete task schema with all fields."""
    id: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    reminder_sent: bool = False
    last_reminder_sent: Optional[datetime] = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

    @field_serializer("due_date", "completed_at", "last_reminder_sent", "created_at", "updated_at")
    def _utc(self, value: Optional[datetime]) -> Optional[str]:
        return as_utc_iso(value)


class TaskMessage(BaseModel):
    """Acknowledgement that carries the affected task."""
    message: str
    task: Task


class Message(BaseModel):
    message: str
