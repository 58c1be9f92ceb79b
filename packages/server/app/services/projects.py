"""
Project service. All writes require context admin; deletion is a soft hide.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.permissions import authorize, get_context_or_404, get_project_or_404
from app.models.project import Project
from nexposit_shared.schemas.projects import ProjectCreate, ProjectUpdate

log = structlog.get_logger()


async def visible_projects(session: AsyncSession, context_id: uuid.UUID) -> list[Project]:
    result = await session.execute(
        select(Project)
        .where(Project.context_id == context_id, Project.is_hidden == False)  # noqa: E712
        .order_by(Project.created_at.desc())
    )
    return list(result.scalars().all())


async def create_project(
    session: AsyncSession,
    context_id: uuid.UUID,
    req: ProjectCreate,
    user_id: uuid.UUID,
) -> Project:
    context = await get_context_or_404(session, context_id)
    await authorize(session, context, user_id, admin=True, denied="Only admins can create projects")

    project = Project(
        context_id=context.id,
        name=req.name,
        description=req.description,
        color_code=req.color_code,
    )
    session.add(project)
    await session.flush()

    log.info("project.created", project_id=str(project.id), context_id=str(context.id))
    return project


async def list_projects(
    session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID
) -> list[Project]:
    context = await get_context_or_404(session, context_id)
    await authorize(session, context, user_id)
    return await visible_projects(session, context.id)


async def get_project(session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID) -> Project:
    project = await get_project_or_404(session, project_id)
    await authorize(session, project, user_id)
    return project


async def update_project(
    session: AsyncSession,
    project_id: uuid.UUID,
    req: ProjectUpdate,
    user_id: uuid.UUID,
) -> Project:
    project = await get_project_or_404(session, project_id)
    await authorize(session, project, user_id, admin=True, denied="Only admins can update projects")

    for key, value in req.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(project, key, value)
    session.add(project)
    await session.flush()

    log.info("project.updated", project_id=str(project.id), by=str(user_id))
    return project


async def delete_project(session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Soft-hide. Posts stay in storage but become unreachable."""
    project = await get_project_or_404(session, project_id)
    await authorize(session, project, user_id, admin=True, denied="Only admins can delete projects")

    project.is_hidden = True
    session.add(project)
    await session.flush()

    log.info("project.hidden", project_id=str(project.id), by=str(user_id))
