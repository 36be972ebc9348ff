from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, Index
from datetime import datetime
from typing import Optional
from uuid import uuid4
import enum


class Priority(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# Listing order: High first, Low last
PRIORITY_RANK = {Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}


class Task(SQLModel, table=True):
    """Task model for todo items.

    ``completed_at`` is set exactly when ``completed`` is true. The reminder
    flags are only written by the reminder scan.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_completed_due_date_user_id", "completed", "due_date", "user_id"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(default=None, sa_type=DateTime)
    priority: Priority = Field(default=Priority.MEDIUM)
    completed: bool = Field(default=False)
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    reminder_sent: bool = Field(default=False)
    last_reminder_sent: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    user_id: str = Field(foreign_key="users.id", index=True)

    # Relationship back to user
    user: Optional["User"] = Relationship(back_populates="tasks")

    def set_completed(self, completed: bool, when: Optional[datetime] = None) -> None:
        """Change completion state, keeping ``completed_at`` in step."""
        self.completed = completed
        self.completed_at = (when or datetime.utcnow()) if completed else None
