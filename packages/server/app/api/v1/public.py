"""
Unauthenticated, read-only endpoints. No invite codes, membership or authors.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import ok
from app.services import contexts as context_service
from app.services import public as public_service

router = APIRouter()


@router.get("/{context_id}/dashboard")
async def dashboard(context_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    result = await public_service.get_dashboard(session, context_id)
    return ok(result.model_dump(by_alias=True, mode="json"))


@router.get("/contexts/{context_id}")
async def public_context(context_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    context = await context_service.get_public_context(session, context_id)
    return ok({"context": context})


@router.get("/contexts/{context_id}/projects")
async def public_projects(context_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    projects = await public_service.list_public_projects(session, context_id)
    return ok({"projects": projects})
