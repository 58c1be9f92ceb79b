"""Context (organization/workspace) model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Context(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "contexts"

    name: str = Field(nullable=False, index=True)
    description: str = Field(default="", nullable=False)
    # Creator; never reassigned.
    owner_user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    invite_code: str = Field(unique=True, nullable=False, index=True, max_length=8)
    is_hidden: bool = Field(default=False, nullable=False)
