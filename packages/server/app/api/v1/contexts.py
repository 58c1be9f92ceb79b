"""
Context endpoints: CRUD, joining, membership and invite codes.

Every mutation commits in the handler; services only flush.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.core.errors import ok
from app.services import contexts as context_service
from app.services import invites as invite_service
from app.services import memberships as membership_service
from app.services import posts as post_service
from app.services import projects as project_service
from nexposit_shared.schemas.common import PostStatus
from nexposit_shared.schemas.contexts import (
    ContextCreateRequest,
    ContextUpdateRequest,
    RoleUpdateRequest,
)
from nexposit_shared.schemas.projects import ProjectCreate, ProjectRead

router = APIRouter()


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_context(
    body: ContextCreateRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a context. The caller becomes its owner and first admin."""
    context = await context_service.create_context(session, body, auth.user_id)
    await session.commit()
    return ok({"context": context})


@router.get("")
async def list_contexts(
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    contexts = await context_service.list_user_contexts(session, auth.user_id)
    return ok({"contexts": contexts})


@router.post("/join/{code}")
async def join_by_code(
    code: str,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    result = await invite_service.join_by_code(session, code, auth.user_id)
    await session.commit()
    return ok({"context": result.context}, message=result.message)


@router.get("/{context_id}")
async def get_context(
    context_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    context = await context_service.get_context(session, context_id, auth.user_id)
    return ok({"context": context})


@router.patch("/{context_id}")
async def update_context(
    context_id: uuid.UUID,
    body: ContextUpdateRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    context = await context_service.update_context(session, context_id, body, auth.user_id)
    await session.commit()
    return ok({"context": context})


@router.post("/{context_id}/join")
async def join_by_id(
    context_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Direct join. Repeating it is harmless."""
    result = await invite_service.join_by_id(session, context_id, auth.user_id)
    await session.commit()
    return ok(
        {"context": result.context, "already_member": result.already_member},
        message=result.message,
    )


@router.post("/{context_id}/regenerate-invite")
async def regenerate_invite(
    context_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    context = await invite_service.regenerate_invite_code(session, context_id, auth.user_id)
    await session.commit()
    return ok({"invite_code": context.invite_code}, message="Invite code regenerated successfully")


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/{context_id}/members")
async def list_members(
    context_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    members = await membership_service.list_context_members(session, context_id, auth.user_id)
    return ok({"members": members})


@router.patch("/{context_id}/members/{user_id}/role")
async def update_member_role(
    context_id: uuid.UUID,
    user_id: uuid.UUID,
    body: RoleUpdateRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.update_role(session, context_id, user_id, body.role, auth.user_id)
    await session.commit()
    return ok(message=f"Member role updated to {body.role}")


@router.delete("/{context_id}/members/{user_id}")
async def remove_member(
    context_id: uuid.UUID,
    user_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.remove_member(session, context_id, user_id, auth.user_id)
    await session.commit()
    return ok(message="Member removed from context")


# ---------------------------------------------------------------------------
# Nested collections
# ---------------------------------------------------------------------------


@router.post("/{context_id}/projects", status_code=201)
async def create_project(
    context_id: uuid.UUID,
    body: ProjectCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.create_project(session, context_id, body, auth.user_id)
    await session.commit()
    return ok({"project": ProjectRead.model_validate(project)})


@router.get("/{context_id}/projects")
async def list_projects(
    context_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    projects = await project_service.list_projects(session, context_id, auth.user_id)
    return ok({"projects": [ProjectRead.model_validate(p) for p in projects]})


@router.get("/{context_id}/posts")
async def list_context_posts(
    context_id: uuid.UUID,
    status: PostStatus | None = Query(None),
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    posts = await post_service.list_context_posts(session, context_id, auth.user_id, status)
    return ok({"posts": await post_service.to_read_models(session, posts)})
