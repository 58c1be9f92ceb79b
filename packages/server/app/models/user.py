"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)  # stored lower-cased
    full_name: str = Field(nullable=False)
    timezone: str = Field(default="UTC", nullable=False)
    password_hash: Optional[str] = Field(default=None)  # None for federated-only accounts
    is_google_user: bool = Field(default=False, nullable=False)
    google_id: Optional[str] = Field(default=None, index=True)
    avatar_url: Optional[str] = None
    password_reset_token: Optional[str] = Field(default=None, index=True)  # sha256 digest
    password_reset_expires: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
