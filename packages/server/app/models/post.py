"""Post model."""

from datetime import date, datetime, time
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Post(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "posts"

    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=200)
    publish_date: date = Field(nullable=False, index=True)
    publish_time_slot: Optional[str] = None  # morning | noon | evening
    specific_time: Optional[time] = None
    status: str = Field(default="pending", nullable=False)  # pending | approved
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    approved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    approved_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
