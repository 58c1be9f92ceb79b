"""
Membership and role resolution, plus the single authorization gate.

Every project or post action is authorized against its parent context: there is
no per-project role. ``resolve_context`` walks an entity up to its context and
``authorize`` applies the membership/admin checks in one place.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Forbidden, NotFound
from app.models.context import Context
from app.models.context_membership import ContextMembership
from app.models.post import Post
from app.models.project import Project
from app.models.project_membership import ProjectMembership
from nexposit_shared.schemas.common import Role

Scoped = Union[Context, Project, Post]


# ---------------------------------------------------------------------------
# Membership lookups
# ---------------------------------------------------------------------------

async def get_membership(
    session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[ContextMembership]:
    """Membership row or None. None means "not a member", never an error."""
    result = await session.execute(
        select(ContextMembership).where(
            ContextMembership.context_id == context_id,
            ContextMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def is_admin(session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    membership = await get_membership(session, context_id, user_id)
    return membership is not None and membership.role == Role.ADMIN.value


def is_owner(context: Context, user_id: uuid.UUID) -> bool:
    return context.owner_user_id == user_id


async def is_project_member(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    result = await session.execute(
        select(ProjectMembership).where(
            ProjectMembership.project_id == project_id,
            ProjectMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none() is not None


# ---------------------------------------------------------------------------
# Visible-entity loaders (hidden behaves as missing)
# ---------------------------------------------------------------------------

async def get_context_or_404(session: AsyncSession, context_id: uuid.UUID) -> Context:
    context = await session.get(Context, context_id)
    if not context or context.is_hidden:
        raise NotFound("Context not found")
    return context


async def get_project_or_404(session: AsyncSession, project_id: uuid.UUID) -> Project:
    project = await session.get(Project, project_id)
    if not project or project.is_hidden:
        raise NotFound("Project not found")
    return project


async def get_post_or_404(session: AsyncSession, post_id: uuid.UUID) -> Post:
    # Posts under a hidden project are unreachable.
    result = await session.execute(
        select(Post)
        .join(Project, Project.id == Post.project_id)
        .where(Post.id == post_id, Project.is_hidden == False)  # noqa: E712
    )
    post = result.scalar_one_or_none()
    if not post:
        raise NotFound("Post not found")
    return post


async def resolve_context(session: AsyncSession, entity: Scoped) -> Context:
    """Walk an entity up to its owning (visible) context."""
    if isinstance(entity, Context):
        if entity.is_hidden:
            raise NotFound("Context not found")
        return entity
    if isinstance(entity, Post):
        entity = await get_project_or_404(session, entity.project_id)
    return await get_context_or_404(session, entity.context_id)


# ---------------------------------------------------------------------------
# Authorization gate
# ---------------------------------------------------------------------------

@dataclass
class Grant:
    """Outcome of a successful authorization: the scope and the caller's standing."""

    context: Context
    membership: ContextMembership
    user_id: uuid.UUID

    @property
    def is_admin(self) -> bool:
        return self.membership.role == Role.ADMIN.value


async def authorize(
    session: AsyncSession,
    entity: Scoped,
    user_id: uuid.UUID,
    *,
    admin: bool = False,
    denied: str = "Only admins can perform this action",
) -> Grant:
    """Require context membership (and optionally admin) for ``entity``'s scope.

    Raises NotFound when the scope is missing or hidden, Forbidden when the
    caller is not a member or lacks the admin role.
    """
    context = await resolve_context(session, entity)
    membership = await get_membership(session, context.id, user_id)
    if membership is None:
        raise Forbidden("You do not have access to this context")
    grant = Grant(context=context, membership=membership, user_id=user_id)
    if admin and not grant.is_admin:
        raise Forbidden(denied)
    return grant
