"""
Post service and approval workflow.

States: pending (initial) -> approved (terminal).

- create: project member or context admin
- update/delete: context admin on any post, creator on own post while pending
- approve: context admin only; approving twice is a conflict
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import Conflict, Forbidden, ValidationFailed
from app.core.permissions import (
    Grant,
    authorize,
    get_context_or_404,
    get_post_or_404,
    get_project_or_404,
    is_project_member,
)
from app.models.post import Post
from app.models.project import Project
from app.models.user import User
from nexposit_shared.schemas.common import PostStatus, UserSummary
from nexposit_shared.schemas.posts import (
    PostCreate,
    PostProjectRef,
    PostRead,
    PostUpdate,
    check_time_exclusive,
    validate_publish_window,
    validate_transition,
)

log = structlog.get_logger()
settings = get_settings()


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def _check_publish_date(publish_date: date) -> None:
    valid, error = validate_publish_window(publish_date, today_utc(), settings.post_horizon_days)
    if not valid:
        raise ValidationFailed(error)


def _can_modify(grant: Grant, post: Post) -> bool:
    if grant.is_admin:
        return True
    return post.created_by == grant.user_id and post.status == PostStatus.PENDING.value


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

async def to_read_models(session: AsyncSession, posts: list[Post]) -> list[PostRead]:
    """Attach project display fields and creator/approver summaries."""
    if not posts:
        return []

    project_ids = {p.project_id for p in posts}
    user_ids = {p.created_by for p in posts} | {p.approved_by for p in posts if p.approved_by}

    projects = {
        project.id: project
        for project in (
            await session.execute(select(Project).where(Project.id.in_(project_ids)))
        ).scalars()
    }
    users = {
        user.id: UserSummary.model_validate(user)
        for user in (await session.execute(select(User).where(User.id.in_(user_ids)))).scalars()
    }

    results = []
    for post in posts:
        project = projects.get(post.project_id)
        results.append(
            PostRead(
                id=post.id,
                project_id=post.project_id,
                title=post.title,
                publish_date=post.publish_date,
                publish_time_slot=post.publish_time_slot,
                specific_time=post.specific_time,
                status=post.status,
                created_by=post.created_by,
                approved_by=post.approved_by,
                approved_at=post.approved_at,
                created_at=post.created_at,
                updated_at=post.updated_at,
                project=PostProjectRef(
                    id=project.id, name=project.name, color_code=project.color_code
                )
                if project
                else None,
                created_by_user=users.get(post.created_by),
                approved_by_user=users.get(post.approved_by) if post.approved_by else None,
            )
        )
    return results


async def to_read_model(session: AsyncSession, post: Post) -> PostRead:
    return (await to_read_models(session, [post]))[0]


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def create_post(
    session: AsyncSession,
    project_id: uuid.UUID,
    req: PostCreate,
    user_id: uuid.UUID,
) -> Post:
    project = await get_project_or_404(session, project_id)
    grant = await authorize(session, project, user_id)
    if not grant.is_admin and not await is_project_member(session, project.id, user_id):
        raise Forbidden("You must be assigned to this project to create posts")

    _check_publish_date(req.publish_date)

    post = Post(
        project_id=project.id,
        title=req.title,
        publish_date=req.publish_date,
        publish_time_slot=req.publish_time_slot.value if req.publish_time_slot else None,
        specific_time=req.specific_time,
        status=PostStatus.PENDING.value,
        created_by=user_id,
    )
    session.add(post)
    await session.flush()

    log.info("post.created", post_id=str(post.id), project_id=str(project.id), by=str(user_id))
    return post


async def list_project_posts(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> list[Post]:
    project = await get_project_or_404(session, project_id)
    await authorize(session, project, user_id)
    result = await session.execute(
        select(Post).where(Post.project_id == project.id).order_by(Post.publish_date)
    )
    return list(result.scalars().all())


async def list_context_posts(
    session: AsyncSession,
    context_id: uuid.UUID,
    user_id: uuid.UUID,
    status: Optional[PostStatus] = None,
) -> list[Post]:
    """Posts across the context's visible projects, soonest first."""
    context = await get_context_or_404(session, context_id)
    await authorize(session, context, user_id)

    stmt = (
        select(Post)
        .join(Project, Project.id == Post.project_id)
        .where(Project.context_id == context.id, Project.is_hidden == False)  # noqa: E712
    )
    if status:
        stmt = stmt.where(Post.status == status.value)
    result = await session.execute(stmt.order_by(Post.publish_date))
    return list(result.scalars().all())


async def get_post(session: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> Post:
    post = await get_post_or_404(session, post_id)
    await authorize(session, post, user_id)
    return post


async def update_post(
    session: AsyncSession,
    post_id: uuid.UUID,
    req: PostUpdate,
    user_id: uuid.UUID,
) -> Post:
    post = await get_post_or_404(session, post_id)
    grant = await authorize(session, post, user_id)
    if not _can_modify(grant, post):
        raise Forbidden("You can only edit your own pending posts. Admins can edit any post.")

    changes = req.model_dump(exclude_unset=True)
    if changes.get("title") is not None:
        post.title = changes["title"]
    if changes.get("publish_date") is not None:
        _check_publish_date(changes["publish_date"])
        post.publish_date = changes["publish_date"]

    if "publish_time_slot" in changes or "specific_time" in changes:
        slot = changes.get("publish_time_slot")
        specific = changes.get("specific_time")
        try:
            check_time_exclusive(slot, specific)
        except ValueError as exc:
            raise ValidationFailed(str(exc))
        # Choosing one kind of time clears the other.
        post.publish_time_slot = slot.value if slot else None
        post.specific_time = specific

    post.updated_at = datetime.now(timezone.utc)
    session.add(post)
    await session.flush()

    log.info("post.updated", post_id=str(post.id), by=str(user_id))
    return post


async def delete_post(session: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
    post = await get_post_or_404(session, post_id)
    grant = await authorize(session, post, user_id)
    if not _can_modify(grant, post):
        raise Forbidden("You can only delete your own pending posts. Admins can delete any post.")

    await session.delete(post)
    await session.flush()
    log.info("post.deleted", post_id=str(post_id), by=str(user_id))


async def approve_post(session: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID) -> Post:
    post = await get_post_or_404(session, post_id)
    await authorize(session, post, user_id, admin=True, denied="Only admins can approve posts")

    valid, error = validate_transition(PostStatus(post.status), PostStatus.APPROVED)
    if not valid:
        raise Conflict(error)

    now = datetime.now(timezone.utc)
    post.status = PostStatus.APPROVED.value
    post.approved_by = user_id
    post.approved_at = now
    post.updated_at = now
    session.add(post)
    await session.flush()

    log.info("post.approved", post_id=str(post.id), by=str(user_id))
    return post
