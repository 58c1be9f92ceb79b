"""User-Context membership (join table)."""

import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin


class ContextMembership(CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "context_members"

    context_id: uuid.UUID = Field(foreign_key="contexts.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="member")  # admin | member
