"""Post schemas and the rules governing scheduling and approval."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from .common import (
    POST_TRANSITIONS,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    PostStatus,
    TimeSlot,
    UserSummary,
)


def check_title_length(value: str) -> str:
    if value is None or not (TITLE_MIN_LENGTH <= len(value) <= TITLE_MAX_LENGTH):
        raise ValueError(
            f"Post title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
        )
    return value


def check_time_exclusive(slot: Optional[TimeSlot], specific_time: Optional[time]) -> None:
    if slot is not None and specific_time is not None:
        raise ValueError("Cannot specify both time slot and specific time")


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class PostCreate(BaseModel):
    title: str
    publish_date: date
    publish_time_slot: Optional[TimeSlot] = None
    specific_time: Optional[time] = None

    @field_validator("title")
    @classmethod
    def _title_length(cls, v: str) -> str:
        return check_title_length(v)

    @model_validator(mode="after")
    def _one_time_field(self) -> "PostCreate":
        check_time_exclusive(self.publish_time_slot, self.specific_time)
        return self


class PostUpdate(BaseModel):
    """Partial update; slot/time exclusivity is checked against the merged post."""
    title: Optional[str] = None
    publish_date: Optional[date] = None
    publish_time_slot: Optional[TimeSlot] = None
    specific_time: Optional[time] = None

    @field_validator("title")
    @classmethod
    def _title_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return check_title_length(v)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class PostProjectRef(BaseModel):
    id: UUID
    name: str
    color_code: str


class PostRead(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    publish_date: date
    publish_time_slot: Optional[TimeSlot] = None
    specific_time: Optional[time] = None
    status: PostStatus
    created_by: UUID
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    project: Optional[PostProjectRef] = None
    created_by_user: Optional[UserSummary] = None
    approved_by_user: Optional[UserSummary] = None


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def validate_publish_window(
    publish_date: date, today: date, horizon_days: int = 60
) -> tuple[bool, str]:
    """Check a publish date against [today, today + horizon_days].

    Returns (is_valid, error_message).
    """
    if publish_date < today:
        return False, "Publish date cannot be in the past"
    if publish_date > today + timedelta(days=horizon_days):
        return False, (
            f"Publish date cannot be more than {horizon_days} days in the future"
        )
    return True, ""


def validate_transition(current: PostStatus, target: PostStatus) -> tuple[bool, str]:
    """Validate a post status transition.

    Returns (is_valid, error_message).
    """
    if current == target:
        return False, f"Post is already {current.value}"
    if target not in POST_TRANSITIONS[current]:
        return False, f"Cannot transition post from {current.value} to {target.value}"
    return True, ""
