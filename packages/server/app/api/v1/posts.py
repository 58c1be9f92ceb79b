"""
Post endpoints and the approval transition.

Creation and listing live under ``/projects/{project_id}/posts`` and
``/contexts/{context_id}/posts``.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.core.errors import ok
from app.services import posts as post_service
from nexposit_shared.schemas.posts import PostUpdate

router = APIRouter()


@router.get("/{post_id}")
async def get_post(
    post_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    post = await post_service.get_post(session, post_id, auth.user_id)
    return ok({"post": await post_service.to_read_model(session, post)})


@router.patch("/{post_id}")
async def update_post(
    post_id: uuid.UUID,
    body: PostUpdate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    post = await post_service.update_post(session, post_id, body, auth.user_id)
    await session.commit()
    return ok({"post": await post_service.to_read_model(session, post)})


@router.delete("/{post_id}")
async def delete_post(
    post_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await post_service.delete_post(session, post_id, auth.user_id)
    await session.commit()
    return ok(message="Post deleted successfully")


@router.patch("/{post_id}/approve")
async def approve_post(
    post_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """pending -> approved (Admin only). Approved posts cannot be re-approved."""
    post = await post_service.approve_post(session, post_id, auth.user_id)
    await session.commit()
    return ok({"post": await post_service.to_read_model(session, post)}, message="Post approved")
