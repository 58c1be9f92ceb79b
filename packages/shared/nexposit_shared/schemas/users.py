"""Identity schemas: registration, login, password reset, pending joins."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


def check_password_strength(password: str) -> str:
    """At least 8 characters with one uppercase, one lowercase and one digit."""
    if (
        len(password) < 8
        or not re.search(r"[A-Z]", password)
        or not re.search(r"[a-z]", password)
        or not re.search(r"[0-9]", password)
    ):
        raise ValueError(
            "Password must be at least 8 characters with 1 uppercase, 1 lowercase, and 1 number"
        )
    return password


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(min_length=1, max_length=255)
    timezone: str = "UTC"
    pending_ticket: Optional[str] = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("full_name")
    @classmethod
    def _non_blank_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name is required")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    pending_ticket: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyResetTokenRequest(BaseModel):
    token: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class PendingJoinCreate(BaseModel):
    """Join target remembered across an authentication redirect."""
    invite_code: Optional[str] = Field(default=None, min_length=1, max_length=32)
    context_id: Optional[UUID] = None

    @model_validator(mode="after")
    def _has_target(self) -> "PendingJoinCreate":
        if self.invite_code is None and self.context_id is None:
            raise ValueError("Either invite_code or context_id is required")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    timezone: str
    is_google_user: bool = False
    avatar_url: Optional[str] = None
    created_at: datetime


class PendingJoinStatus(str, Enum):
    JOINED = "joined"
    ALREADY_MEMBER = "already_member"
    FAILED = "failed"
    NONE = "none"


class PendingJoinTicket(BaseModel):
    ticket: str
    expires_in: int


class PendingJoinOutcome(BaseModel):
    status: PendingJoinStatus
    context_id: Optional[UUID] = None
    error: Optional[str] = None


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    pending_join: Optional[PendingJoinOutcome] = None
