"""
Authentication for NexPosit.

Supports:
- Email/Password credentials (bcrypt)
- JWT session tokens via ``Authorization: Bearer`` or the session cookie
- JWT revocation list in Redis
- Signed OAuth ``state`` values for the Google sign-in round trip

Authorization (who may touch which context/project/post) lives in
``app.core.permissions``; this module only answers "who is calling".
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import InvalidToken, TokenExpired, Unauthenticated
from app.core.redis import get_redis, redis_key
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "np_session"
CSRF_COOKIE = "np_csrf"

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt (cost factor from settings, 12 by default)."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Verify a password against a bcrypt hash. Federated users have no hash."""
    if not hashed:
        return False
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def verify_session_token(token: str) -> dict:
    """Identity check with the error taxonomy applied.

    Returns the decoded payload, or raises TokenExpired / InvalidToken.
    """
    try:
        payload = decode_jwt(token)
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.PyJWTError:
        raise InvalidToken()
    if "sub" not in payload:
        raise InvalidToken()
    return payload


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.jwt_expire_minutes * 60
    await redis.setex(redis_key("jwt", "revoked", jti), ttl, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(redis_key("jwt", "revoked", jti)) > 0


# ---------------------------------------------------------------------------
# CSRF Token / OAuth state
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def create_oauth_state(pending_ticket: Optional[str] = None) -> str:
    """Signed, short-lived OAuth ``state`` that can carry a pending-join ticket."""
    now = datetime.now(timezone.utc)
    payload = {
        "nonce": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + timedelta(minutes=10),
        "purpose": "oauth_state",
    }
    if pending_ticket:
        payload["ticket"] = pending_ticket
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_oauth_state(state: str) -> dict:
    try:
        payload = decode_jwt(state)
    except jwt.PyJWTError:
        raise InvalidToken("Invalid or expired OAuth state")
    if payload.get("purpose") != "oauth_state":
        raise InvalidToken("Invalid or expired OAuth state")
    return payload


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class AuthenticatedUser:
    """Container for an authenticated user and the token that identified them."""

    def __init__(self, user: User, token_payload: dict):
        self.user = user
        self.user_id = user.id
        self.email = user.email
        self.jti = token_payload.get("jti")
        self.token_payload = token_payload


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """Main authentication dependency. Bearer header first, then session cookie."""
    token = _extract_token(request, credentials)
    if not token:
        raise Unauthenticated()

    payload = verify_session_token(token)

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise Unauthenticated("Session has been revoked")

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise InvalidToken()

    user = await session.get(User, user_id)
    if not user:
        raise Unauthenticated("User not found")

    auth_user = AuthenticatedUser(user=user, token_payload=payload)
    request.state.auth = auth_user
    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return auth_user
