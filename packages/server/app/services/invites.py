"""
Invite codes, the two join paths, and pending-join tickets.

``join_by_code`` is an explicit user action: repeating it is a conflict.
``join_by_id`` runs automatically after authentication and is idempotent.
Both are kept as separate operations on purpose.
"""

from __future__ import annotations

import json
import secrets
import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import AlreadyMember, NotFound, PlannerError
from app.core.permissions import authorize, get_context_or_404, get_membership
from app.core.redis import get_redis, redis_key
from app.models.context import Context
from app.models.context_membership import ContextMembership
from app.services.contexts import context_response, unique_invite_code
from nexposit_shared.schemas.common import Role
from nexposit_shared.schemas.contexts import (
    JoinResult,
    normalize_invite_code,
)
from nexposit_shared.schemas.users import (
    PendingJoinCreate,
    PendingJoinOutcome,
    PendingJoinStatus,
    PendingJoinTicket,
)

log = structlog.get_logger()
settings = get_settings()


# ---------------------------------------------------------------------------
# Invite codes
# ---------------------------------------------------------------------------

async def regenerate_invite_code(
    session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID
) -> Context:
    """Replace the invite code. The old one stops working immediately."""
    context = await get_context_or_404(session, context_id)
    await authorize(
        session, context, user_id, admin=True, denied="Only admins can regenerate invite codes"
    )
    context.invite_code = await unique_invite_code(session)
    session.add(context)
    await session.flush()
    log.info("context.invite_regenerated", context_id=str(context.id), by=str(user_id))
    return context


# ---------------------------------------------------------------------------
# Join paths
# ---------------------------------------------------------------------------

async def _add_member(
    session: AsyncSession, context: Context, user_id: uuid.UUID
) -> Optional[ContextMembership]:
    """Insert a member row. None when a concurrent request already added it."""
    membership = ContextMembership(
        context_id=context.id, user_id=user_id, role=Role.MEMBER.value
    )
    try:
        async with session.begin_nested():
            session.add(membership)
    except IntegrityError:
        log.info("context.join_raced", context_id=str(context.id), user_id=str(user_id))
        return None
    log.info("context.member_joined", context_id=str(context.id), user_id=str(user_id))
    return membership


async def join_by_code(session: AsyncSession, code: str, user_id: uuid.UUID) -> JoinResult:
    """Join via invite code. Unknown code is NotFound, repeat join is AlreadyMember."""
    result = await session.execute(
        select(Context).where(
            Context.invite_code == normalize_invite_code(code),
            Context.is_hidden == False,  # noqa: E712
        )
    )
    context = result.scalar_one_or_none()
    if context is None:
        raise NotFound("Invalid invite code")

    if await get_membership(session, context.id, user_id) is not None:
        raise AlreadyMember()

    membership = await _add_member(session, context, user_id)
    if membership is None:
        raise AlreadyMember()
    return JoinResult(context=context_response(context, membership))


async def join_by_id(session: AsyncSession, context_id: uuid.UUID, user_id: uuid.UUID) -> JoinResult:
    """Join a context directly. Existing members get success with a notice."""
    context = await get_context_or_404(session, context_id)

    existing = await get_membership(session, context.id, user_id)
    if existing is None:
        membership = await _add_member(session, context, user_id)
        if membership is not None:
            return JoinResult(context=context_response(context, membership))
        await session.refresh(context)
        existing = await get_membership(session, context.id, user_id)

    return JoinResult(
        context=context_response(context, existing),
        already_member=True,
        message="You are already a member of this context",
    )


# ---------------------------------------------------------------------------
# Pending joins (one-time tickets that survive an authentication redirect)
# ---------------------------------------------------------------------------

async def create_pending_join(req: PendingJoinCreate) -> PendingJoinTicket:
    redis = await get_redis()
    ticket = secrets.token_urlsafe(24)
    record = {
        "context_id": str(req.context_id) if req.context_id else None,
        "invite_code": normalize_invite_code(req.invite_code) if req.invite_code else None,
    }
    ttl = settings.pending_join_ttl_seconds
    await redis.setex(redis_key("pending_join", ticket), ttl, json.dumps(record))
    log.info("pending_join.created", has_context=bool(req.context_id), has_code=bool(req.invite_code))
    return PendingJoinTicket(ticket=ticket, expires_in=ttl)


async def take_pending_join(ticket: str) -> Optional[dict]:
    """Fetch and delete a ticket in one step. None if missing, expired or used."""
    redis = await get_redis()
    raw = await redis.getdel(redis_key("pending_join", ticket))
    if raw is None:
        return None
    return json.loads(raw)


async def consume_pending_join(
    session: AsyncSession, ticket: Optional[str], user_id: uuid.UUID
) -> PendingJoinOutcome:
    """Apply a pending join for a freshly authenticated user.

    Direct join by context id wins over an invite code. Join failures are
    reported in the outcome and never raised.
    """
    if not ticket:
        return PendingJoinOutcome(status=PendingJoinStatus.NONE)
    record = await take_pending_join(ticket)
    if record is None:
        return PendingJoinOutcome(status=PendingJoinStatus.NONE)
    return await apply_pending_join(session, record, user_id)


async def apply_pending_join(
    session: AsyncSession, record: dict, user_id: uuid.UUID
) -> PendingJoinOutcome:
    context_id = record.get("context_id")
    invite_code = record.get("invite_code")
    try:
        if context_id:
            joined = await join_by_id(session, uuid.UUID(context_id), user_id)
        elif invite_code:
            joined = await join_by_code(session, invite_code, user_id)
        else:
            return PendingJoinOutcome(status=PendingJoinStatus.NONE)
    except AlreadyMember as exc:
        return PendingJoinOutcome(status=PendingJoinStatus.ALREADY_MEMBER, error=exc.message)
    except PlannerError as exc:
        log.info("pending_join.failed", user_id=str(user_id), error=exc.message)
        return PendingJoinOutcome(
            status=PendingJoinStatus.FAILED,
            context_id=uuid.UUID(context_id) if context_id else None,
            error=exc.message,
        )

    status = PendingJoinStatus.ALREADY_MEMBER if joined.already_member else PendingJoinStatus.JOINED
    log.info("pending_join.applied", user_id=str(user_id), context_id=str(joined.context.id), status=status.value)
    return PendingJoinOutcome(status=status, context_id=joined.context.id)
