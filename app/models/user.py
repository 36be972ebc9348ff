from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime
from datetime import datetime
from typing import List
from uuid import uuid4


class User(SQLModel, table=True):
    """Account record. ``email`` is stored lower-cased, so uniqueness is
    case-insensitive."""
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)

    # Relationship to tasks
    tasks: List["Task"] = Relationship(back_populates="user")
