"""Project assignment list. Not a privilege tier: authority stays with context admins."""

import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin


class ProjectMembership(CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "project_members"

    project_id: uuid.UUID = Field(foreign_key="projects.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
