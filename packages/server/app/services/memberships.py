"""
Context and project membership management.

Role changes and removals share one guard sequence: caller must be admin, the
target cannot be the caller, and the context owner is untouchable. Project
membership is an assignment list only; context admins manage it.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import Conflict, Forbidden, InvalidArgument, NotFound, PreconditionFailed
from app.core.permissions import (
    Grant,
    authorize,
    get_context_or_404,
    get_membership,
    get_project_or_404,
    is_owner,
)
from app.models.context import Context
from app.models.context_membership import ContextMembership
from app.models.project import Project
from app.models.project_membership import ProjectMembership
from app.models.user import User
from nexposit_shared.schemas.common import Role
from nexposit_shared.schemas.contexts import ContextMemberResponse
from nexposit_shared.schemas.projects import ProjectMemberRead

log = structlog.get_logger()

VALID_ROLES = {role.value for role in Role}


# ---------------------------------------------------------------------------
# Context members
# ---------------------------------------------------------------------------

async def list_context_members(
    session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID
) -> list[ContextMemberResponse]:
    context = await get_context_or_404(session, context_id)
    await authorize(session, context, user_id)

    result = await session.execute(
        select(User, ContextMembership)
        .join(ContextMembership, ContextMembership.user_id == User.id)
        .where(ContextMembership.context_id == context.id)
        .order_by(ContextMembership.created_at)
    )
    return [
        ContextMemberResponse(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=Role(membership.role),
            is_owner=is_owner(context, user.id),
            created_at=membership.created_at,
        )
        for user, membership in result.all()
    ]


async def _guard_member_change(
    session: AsyncSession,
    context: Context,
    target_user_id: uuid.UUID,
    acting_user_id: uuid.UUID,
    *,
    denied: str,
    self_denied: str,
    owner_denied: str,
    role: str | None = None,
) -> ContextMembership:
    """Admin, role, self and owner guards shared by role update and removal."""
    await authorize(session, context, acting_user_id, admin=True, denied=denied)
    if role is not None and role not in VALID_ROLES:
        raise InvalidArgument("Role must be either admin or member")
    if target_user_id == acting_user_id:
        raise Forbidden(self_denied)
    if is_owner(context, target_user_id):
        raise Forbidden(owner_denied)

    target = await get_membership(session, context.id, target_user_id)
    if target is None:
        raise NotFound("Member not found")
    return target


async def update_role(
    session: AsyncSession,
    context_id: uuid.UUID,
    target_user_id: uuid.UUID,
    role: str,
    acting_user_id: uuid.UUID,
) -> ContextMembership:
    context = await get_context_or_404(session, context_id)
    target = await _guard_member_change(
        session,
        context,
        target_user_id,
        acting_user_id,
        denied="Only admins can change member roles",
        self_denied="You cannot change your own role",
        owner_denied="The context owner's role cannot be changed",
        role=role,
    )
    target.role = role
    session.add(target)
    await session.flush()

    log.info(
        "member.role_updated",
        context_id=str(context.id),
        user_id=str(target_user_id),
        role=role,
        by=str(acting_user_id),
    )
    return target


async def remove_member(
    session: AsyncSession,
    context_id: uuid.UUID,
    target_user_id: uuid.UUID,
    acting_user_id: uuid.UUID,
) -> None:
    """Remove a member and their project assignments inside this context."""
    context = await get_context_or_404(session, context_id)
    target = await _guard_member_change(
        session,
        context,
        target_user_id,
        acting_user_id,
        denied="Only admins can remove members",
        self_denied="You cannot remove yourself from the context",
        owner_denied="The context owner cannot be removed",
    )

    project_ids = select(Project.id).where(Project.context_id == context.id)
    await session.execute(
        delete(ProjectMembership).where(
            ProjectMembership.user_id == target_user_id,
            ProjectMembership.project_id.in_(project_ids),
        )
    )
    await session.delete(target)
    await session.flush()

    log.info(
        "member.removed",
        context_id=str(context.id),
        user_id=str(target_user_id),
        by=str(acting_user_id),
    )


# ---------------------------------------------------------------------------
# Project members
# ---------------------------------------------------------------------------

async def list_project_members(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> list[ProjectMemberRead]:
    project = await get_project_or_404(session, project_id)
    await authorize(session, project, user_id)

    result = await session.execute(
        select(User, ProjectMembership)
        .join(ProjectMembership, ProjectMembership.user_id == User.id)
        .where(ProjectMembership.project_id == project.id)
        .order_by(ProjectMembership.created_at)
    )
    return [
        ProjectMemberRead(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            created_at=pm.created_at,
        )
        for user, pm in result.all()
    ]


async def _project_admin(
    session: AsyncSession, project: Project, user_id: uuid.UUID, denied: str
) -> Grant:
    return await authorize(session, project, user_id, admin=True, denied=denied)


async def add_project_member(
    session: AsyncSession,
    project_id: uuid.UUID,
    target_user_id: uuid.UUID,
    acting_user_id: uuid.UUID,
) -> ProjectMembership:
    project = await get_project_or_404(session, project_id)
    grant = await _project_admin(
        session, project, acting_user_id, "Only admins can add members to projects"
    )

    if await get_membership(session, grant.context.id, target_user_id) is None:
        raise PreconditionFailed("User must be a member of the context first")

    existing = await session.get(ProjectMembership, (project.id, target_user_id))
    if existing is not None:
        raise Conflict("User is already a member of this project")

    pm = ProjectMembership(project_id=project.id, user_id=target_user_id)
    session.add(pm)
    await session.flush()

    log.info(
        "project.member_added",
        project_id=str(project.id),
        user_id=str(target_user_id),
        by=str(acting_user_id),
    )
    return pm


async def remove_project_member(
    session: AsyncSession,
    project_id: uuid.UUID,
    target_user_id: uuid.UUID,
    acting_user_id: uuid.UUID,
) -> None:
    project = await get_project_or_404(session, project_id)
    await _project_admin(
        session, project, acting_user_id, "Only admins can remove members from projects"
    )

    pm = await session.get(ProjectMembership, (project.id, target_user_id))
    if pm is None:
        raise NotFound("User is not a member of this project")
    await session.delete(pm)
    await session.flush()

    log.info(
        "project.member_removed",
        project_id=str(project.id),
        user_id=str(target_user_id),
        by=str(acting_user_id),
    )
