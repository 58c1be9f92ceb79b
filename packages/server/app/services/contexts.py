"""
Context service: creation (with the creator's admin membership), listing,
lookup and partial update.
"""

from __future__ import annotations

import secrets
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.permissions import authorize, get_context_or_404
from app.models.context import Context
from app.models.context_membership import ContextMembership
from nexposit_shared.schemas.common import Role
from nexposit_shared.schemas.contexts import (
    INVITE_CODE_ALPHABET,
    INVITE_CODE_LENGTH,
    ContextCreateRequest,
    ContextResponse,
    ContextUpdateRequest,
    PublicContextResponse,
)

log = structlog.get_logger()

MAX_CODE_ATTEMPTS = 10


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


async def unique_invite_code(session: AsyncSession) -> str:
    """Draw codes until one is unused. The unique index still guards races."""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_invite_code()
        existing = await session.execute(select(Context.id).where(Context.invite_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    raise RuntimeError("Could not allocate a unique invite code")


def context_response(context: Context, membership: ContextMembership) -> ContextResponse:
    return ContextResponse(
        id=context.id,
        name=context.name,
        description=context.description,
        owner_user_id=context.owner_user_id,
        invite_code=context.invite_code,
        created_at=context.created_at,
        user_role=Role(membership.role),
        is_owner=context.owner_user_id == membership.user_id,
    )


def public_context_response(context: Context) -> PublicContextResponse:
    return PublicContextResponse(
        id=context.id,
        name=context.name,
        description=context.description,
        created_at=context.created_at,
    )


async def create_context(
    session: AsyncSession, req: ContextCreateRequest, creator_id: uuid.UUID
) -> ContextResponse:
    """Create a context; the creator becomes owner and admin.

    Both rows are flushed in the caller's transaction, so a failure on the
    membership leaves no ownerless context behind.
    """
    context = Context(
        name=req.name,
        description=req.description or "",
        owner_user_id=creator_id,
        invite_code=await unique_invite_code(session),
    )
    session.add(context)
    await session.flush()

    membership = ContextMembership(
        context_id=context.id, user_id=creator_id, role=Role.ADMIN.value
    )
    session.add(membership)
    await session.flush()

    log.info("context.created", context_id=str(context.id), owner=str(creator_id))
    return context_response(context, membership)


async def list_user_contexts(session: AsyncSession, user_id: uuid.UUID) -> list[ContextResponse]:
    """Visible contexts the user belongs to, newest first."""
    result = await session.execute(
        select(Context, ContextMembership)
        .join(ContextMembership, ContextMembership.context_id == Context.id)
        .where(
            ContextMembership.user_id == user_id,
            Context.is_hidden == False,  # noqa: E712
        )
        .order_by(Context.created_at.desc())
    )
    return [context_response(context, membership) for context, membership in result.all()]


async def get_context(
    session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID
) -> ContextResponse:
    context = await get_context_or_404(session, context_id)
    grant = await authorize(session, context, user_id)
    return context_response(context, grant.membership)


async def update_context(
    session: AsyncSession,
    context_id: uuid.UUID,
    req: ContextUpdateRequest,
    user_id: uuid.UUID,
) -> ContextResponse:
    context = await get_context_or_404(session, context_id)
    grant = await authorize(
        session, context, user_id, admin=True, denied="Only admins can update contexts"
    )
    for key, value in req.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(context, key, value)
    session.add(context)
    await session.flush()

    log.info("context.updated", context_id=str(context.id), by=str(user_id))
    return context_response(context, grant.membership)


async def get_public_context(session: AsyncSession, context_id: uuid.UUID) -> PublicContextResponse:
    context = await get_context_or_404(session, context_id)
    return public_context_response(context)
