"""
Context (organization/workspace) schemas shared between server and client.

Covers: context CRUD request/response, membership listings, role updates,
invite codes and join results.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import NAME_MAX_LENGTH, NAME_MIN_LENGTH, Role


# Visually ambiguous characters (0/O, 1/I/L) are left out.
INVITE_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 8


def check_name_length(value: str, label: str) -> str:
    """Shared 3..100 length rule for context and project names."""
    if value is None or not (NAME_MIN_LENGTH <= len(value) <= NAME_MAX_LENGTH):
        raise ValueError(
            f"{label} name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return value


def normalize_invite_code(code: str) -> str:
    """Invite codes are stored and compared upper-cased."""
    return code.strip().upper()


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ContextCreateRequest(BaseModel):
    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        return check_name_length(v, "Context")


class ContextUpdateRequest(BaseModel):
    """Partial update. Only supplied fields change."""
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return check_name_length(v, "Context")


class RoleUpdateRequest(BaseModel):
    # Plain str: an unknown role is rejected by the service after the admin check.
    role: str


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ContextResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    owner_user_id: uuid.UUID
    invite_code: str
    created_at: datetime
    user_role: Role
    is_owner: bool = False


class PublicContextResponse(BaseModel):
    """Context fields safe for unauthenticated readers (no invite code)."""
    id: uuid.UUID
    name: str
    description: str
    created_at: datetime


class ContextMemberResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    full_name: str
    role: Role
    is_owner: bool = False
    created_at: datetime


class JoinResult(BaseModel):
    context: ContextResponse
    already_member: bool = False
    message: str = Field(default="Successfully joined context")
