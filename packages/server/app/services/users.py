"""
Identity store: registration, credential checks, federated sign-in, password reset.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password, verify_password
from app.core.config import get_settings
from app.core.errors import Conflict, Unauthenticated, ValidationFailed
from app.models.user import User
from app.services.notifications import get_notifier
from nexposit_shared.schemas.users import RegisterRequest

log = structlog.get_logger()
settings = get_settings()

RESET_TOKEN_BYTES = 32
GENERIC_RESET_MESSAGE = (
    "If an account exists with that email, a password reset link has been sent."
)
INVALID_RESET_TOKEN = "Invalid or expired reset token"
EXPIRED_RESET_TOKEN = "Reset token has expired. Please request a new one."


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def register_user(session: AsyncSession, req: RegisterRequest) -> User:
    email = str(req.email).strip().lower()
    if await get_user_by_email(session, email):
        raise Conflict("Email already registered")

    user = User(
        email=email,
        full_name=req.full_name.strip(),
        timezone=req.timezone or "UTC",
        password_hash=hash_password(req.password),
    )
    session.add(user)
    await session.flush()

    log.info("auth.registered", user_id=str(user.id))
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    """Same failure for unknown email, federated-only account and wrong password."""
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        log.info("auth.login_failure", reason="invalid_credentials")
        raise Unauthenticated("Invalid email or password")
    log.info("auth.login_success", user_id=str(user.id))
    return user


async def find_or_create_google_user(
    session: AsyncSession,
    *,
    email: str,
    full_name: str,
    google_id: str,
    avatar_url: Optional[str] = None,
) -> User:
    """Match a Google identity by email; create a password-less user if new."""
    user = await get_user_by_email(session, email)
    if user is None:
        user = User(
            email=email.strip().lower(),
            full_name=full_name or email.split("@")[0],
            is_google_user=True,
            google_id=google_id,
            avatar_url=avatar_url,
        )
        session.add(user)
        await session.flush()
        log.info("auth.google_registered", user_id=str(user.id))
        return user

    if not user.google_id:
        user.google_id = google_id
    if avatar_url and not user.avatar_url:
        user.avatar_url = avatar_url
    session.add(user)
    await session.flush()
    log.info("auth.google_login", user_id=str(user.id))
    return user


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 digest. Only the digest is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_token_expired(expires_at: datetime) -> bool:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) > expires_at


@dataclass
class ResetRequestResult:
    message: str
    email_sent: bool = False
    dev_mode: bool = False


async def request_password_reset(session: AsyncSession, email: str) -> ResetRequestResult:
    """Issue a reset token.

    The stored token survives an email failure. Without SMTP settings the
    link is logged instead of sent.
    """
    user = await get_user_by_email(session, email)
    if user is None:
        log.info("password_reset.unknown_email")
        return ResetRequestResult(message=GENERIC_RESET_MESSAGE)

    if user.is_google_user and not user.password_hash:
        raise ValidationFailed("This account uses Google Sign-In. Please sign in with Google.")

    token = generate_reset_token()
    user.password_reset_token = hash_token(token)
    user.password_reset_expires = datetime.now(timezone.utc) + timedelta(
        minutes=settings.password_reset_expire_minutes
    )
    session.add(user)
    # Commit before delivery so a failed send cannot undo the token.
    await session.commit()

    reset_url = f"{settings.client_url}/reset-password?token={token}"
    notifier = get_notifier()
    if notifier is None:
        log.warning("password_reset.dev_mode", user_id=str(user.id), reset_url=reset_url)
        return ResetRequestResult(
            message="Password reset link generated. Check server logs for the link.",
            dev_mode=True,
        )

    sent = await notifier.send_password_reset(user.email, user.full_name, reset_url)
    if not sent:
        log.error("password_reset.email_failed", user_id=str(user.id))
    return ResetRequestResult(message=GENERIC_RESET_MESSAGE, email_sent=sent)


async def _user_for_reset_token(session: AsyncSession, token: str) -> User:
    result = await session.execute(
        select(User).where(User.password_reset_token == hash_token(token))
    )
    user = result.scalar_one_or_none()
    if user is None or user.password_reset_expires is None:
        raise ValidationFailed(INVALID_RESET_TOKEN)
    if is_token_expired(user.password_reset_expires):
        raise ValidationFailed(EXPIRED_RESET_TOKEN)
    return user


async def verify_reset_token(session: AsyncSession, token: str) -> User:
    return await _user_for_reset_token(session, token)


async def reset_password(session: AsyncSession, token: str, new_password: str) -> User:
    user = await _user_for_reset_token(session, token)
    user.password_hash = hash_password(new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    session.add(user)
    await session.flush()

    log.info("password_reset.completed", user_id=str(user.id))
    return user
