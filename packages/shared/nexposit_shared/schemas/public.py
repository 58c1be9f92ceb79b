"""Unauthenticated dashboard projection of a single context."""

from __future__ import annotations

from datetime import date, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .common import PostStatus, TimeSlot
from .contexts import PublicContextResponse
from .projects import PublicProjectRead


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DashboardStats(_CamelModel):
    total_projects: int = 0
    total_posts: int = 0
    pending_posts: int = 0
    approved_posts: int = 0


class UpcomingPost(BaseModel):
    """No creator or approver identity is exposed."""
    id: UUID
    title: str
    publish_date: date
    publish_time_slot: Optional[TimeSlot] = None
    specific_time: Optional[time] = None
    status: PostStatus
    project: Optional[PublicProjectRead] = None


class PublicDashboard(_CamelModel):
    context: PublicContextResponse
    projects: list[PublicProjectRead]
    stats: DashboardStats
    upcoming_posts: list[UpcomingPost]
