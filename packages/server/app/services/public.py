"""
Unauthenticated, read-only projection of a single context.

Exposes public context fields, visible projects (name and color only), status
counts over every post, and the next few posts inside a short window from
today. Nothing here reveals invite codes, membership or post authors.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.permissions import get_context_or_404
from app.models.post import Post
from app.models.project import Project
from app.services.contexts import public_context_response
from app.services.posts import today_utc
from app.services.projects import visible_projects
from nexposit_shared.schemas.common import PostStatus
from nexposit_shared.schemas.projects import PublicProjectRead
from nexposit_shared.schemas.public import DashboardStats, PublicDashboard, UpcomingPost

settings = get_settings()


async def list_public_projects(
    session: AsyncSession, context_id: uuid.UUID
) -> list[PublicProjectRead]:
    context = await get_context_or_404(session, context_id)
    return [PublicProjectRead.model_validate(p) for p in await visible_projects(session, context.id)]


async def _status_counts(session: AsyncSession, context_id: uuid.UUID) -> dict[str, int]:
    result = await session.execute(
        select(Post.status, func.count())
        .join(Project, Project.id == Post.project_id)
        .where(Project.context_id == context_id, Project.is_hidden == False)  # noqa: E712
        .group_by(Post.status)
    )
    return {status: count for status, count in result.all()}


async def get_dashboard(session: AsyncSession, context_id: uuid.UUID) -> PublicDashboard:
    context = await get_context_or_404(session, context_id)
    projects = [PublicProjectRead.model_validate(p) for p in await visible_projects(session, context.id)]
    by_id = {p.id: p for p in projects}

    counts = await _status_counts(session, context.id)
    stats = DashboardStats(
        total_projects=len(projects),
        total_posts=sum(counts.values()),
        pending_posts=counts.get(PostStatus.PENDING.value, 0),
        approved_posts=counts.get(PostStatus.APPROVED.value, 0),
    )

    # Dates carry no time of day, so [today, today + N] covers
    # 00:00:00 today through 23:59:59 on the last day.
    start = today_utc()
    end = start + timedelta(days=settings.public_window_days)
    result = await session.execute(
        select(Post)
        .join(Project, Project.id == Post.project_id)
        .where(
            Project.context_id == context.id,
            Project.is_hidden == False,  # noqa: E712
            Post.publish_date >= start,
            Post.publish_date <= end,
        )
        .order_by(Post.publish_date, Post.created_at)
        .limit(settings.public_upcoming_limit)
    )
    upcoming = [
        UpcomingPost(
            id=post.id,
            title=post.title,
            publish_date=post.publish_date,
            publish_time_slot=post.publish_time_slot,
            specific_time=post.specific_time,
            status=post.status,
            project=by_id.get(post.project_id),
        )
        for post in result.scalars()
    ]

    return PublicDashboard(
        context=public_context_response(context),
        projects=projects,
        stats=stats,
        upcoming_posts=upcoming,
    )
