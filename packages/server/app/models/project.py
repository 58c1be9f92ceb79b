"""Project model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Project(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "projects"

    context_id: uuid.UUID = Field(foreign_key="contexts.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    description: Optional[str] = None
    color_code: str = Field(default="#3B82F6", nullable=False, max_length=7)
    is_hidden: bool = Field(default=False, nullable=False)
