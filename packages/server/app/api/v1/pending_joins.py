"""
Pending joins: remember a join target across sign-in, then apply it once.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.core.errors import NotFound, ok
from app.services import invites as invite_service
from nexposit_shared.schemas.users import PendingJoinCreate

router = APIRouter()


@router.post("", status_code=201)
async def create_pending_join(body: PendingJoinCreate):
    """Unauthenticated. Returns a one-time ticket to carry through sign-in."""
    ticket = await invite_service.create_pending_join(body)
    return ok(ticket.model_dump())


@router.post("/{ticket}/consume")
async def consume_pending_join(
    ticket: str,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    record = await invite_service.take_pending_join(ticket)
    if record is None:
        raise NotFound("Pending join not found or already used")
    outcome = await invite_service.apply_pending_join(session, record, auth.user_id)
    await session.commit()
    return ok({"pending_join": outcome})
