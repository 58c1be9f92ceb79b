"""
Project endpoints: read/update/soft-delete, membership, nested posts.

Creation and listing live under ``/contexts/{context_id}/projects``.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.core.errors import ok
from app.services import memberships as membership_service
from app.services import posts as post_service
from app.services import projects as project_service
from nexposit_shared.schemas.posts import PostCreate
from nexposit_shared.schemas.projects import ProjectMemberAdd, ProjectRead, ProjectUpdate

router = APIRouter()


@router.get("/{project_id}")
async def get_project(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.get_project(session, project_id, auth.user_id)
    return ok({"project": ProjectRead.model_validate(project)})


@router.patch("/{project_id}")
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.update_project(session, project_id, body, auth.user_id)
    await session.commit()
    return ok({"project": ProjectRead.model_validate(project)})


@router.delete("/{project_id}")
async def delete_project(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Hide a project (Admin only). Its posts become unreachable."""
    await project_service.delete_project(session, project_id, auth.user_id)
    await session.commit()
    return ok(message="Project deleted successfully")


# ---------------------------------------------------------------------------
# Project Membership
# ---------------------------------------------------------------------------


@router.get("/{project_id}/members")
async def list_project_members(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    members = await membership_service.list_project_members(session, project_id, auth.user_id)
    return ok({"members": members})


@router.post("/{project_id}/members", status_code=201)
async def add_project_member(
    project_id: uuid.UUID,
    body: ProjectMemberAdd,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.add_project_member(session, project_id, body.user_id, auth.user_id)
    await session.commit()
    return ok(message="Member added to project successfully")


@router.delete("/{project_id}/members/{user_id}")
async def remove_project_member(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.remove_project_member(session, project_id, user_id, auth.user_id)
    await session.commit()
    return ok(message="Member removed from project successfully")


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


@router.post("/{project_id}/posts", status_code=201)
async def create_post(
    project_id: uuid.UUID,
    body: PostCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    post = await post_service.create_post(session, project_id, body, auth.user_id)
    await session.commit()
    return ok({"post": await post_service.to_read_model(session, post)})


@router.get("/{project_id}/posts")
async def list_project_posts(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    posts = await post_service.list_project_posts(session, project_id, auth.user_id)
    return ok({"posts": await post_service.to_read_models(session, posts)})
