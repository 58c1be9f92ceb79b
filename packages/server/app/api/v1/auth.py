"""
Authentication endpoints.

- Email/Password registration & login
- Google sign-in (OAuth2 code flow, signed ``state``)
- JWT session management (me, refresh, logout)
- Password reset

Register, login and the Google callback also apply a pending-join ticket
when one is supplied. A failed join never fails the sign-in.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog
from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    AuthenticatedUser,
    create_jwt,
    create_oauth_state,
    decode_oauth_state,
    generate_csrf_token,
    get_current_user,
    revoke_jwt,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import InvalidToken, ValidationFailed, ok
from app.models.user import User
from app.services import google_oauth
from app.services import invites as invite_service
from app.services import users as user_service
from nexposit_shared.schemas.users import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    PendingJoinOutcome,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
    VerifyResetTokenRequest,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        timezone=user.timezone,
        is_google_user=user.is_google_user,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
    )


def _issue_session(response: Response, user: User) -> str:
    token, _jti = create_jwt(user.id, user.email)
    _set_session_cookies(response, token, generate_csrf_token())
    return token


async def _consume_ticket(
    session: AsyncSession, ticket: Optional[str], user: User
) -> Optional[PendingJoinOutcome]:
    if not ticket:
        return None
    outcome = await invite_service.consume_pending_join(session, ticket, user.id)
    await session.commit()
    return outcome


# ---------------------------------------------------------------------------
# Email/Password
# ---------------------------------------------------------------------------

@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user with email/password."""
    user = await user_service.register_user(session, body)
    await session.commit()

    token = _issue_session(response, user)
    pending = await _consume_ticket(session, body.pending_ticket, user)
    data = AuthResponse(user=_user_response(user), token=token, pending_join=pending)
    return ok(data.model_dump(mode="json"), message="Registration successful")


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    user = await user_service.authenticate(session, str(body.email), body.password)

    token = _issue_session(response, user)
    pending = await _consume_ticket(session, body.pending_ticket, user)
    data = AuthResponse(user=_user_response(user), token=token, pending_join=pending)
    return ok(data.model_dump(mode="json"), message="Login successful")


# ---------------------------------------------------------------------------
# Google sign-in
# ---------------------------------------------------------------------------

@router.get("/google")
async def google_login(ticket: Optional[str] = Query(None)):
    """Redirect to Google. A pending-join ticket rides along in the signed state."""
    if not google_oauth.is_configured():
        raise ValidationFailed("Google sign-in is not configured")
    state = create_oauth_state(ticket)
    return RedirectResponse(google_oauth.authorization_url(state), status_code=302)


def _client_redirect(path: str, **params: str) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return RedirectResponse(f"{settings.client_url}{path}?{query}", status_code=302)


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    if error or not code or not state:
        log.info("auth.google_failure", reason=error or "missing_code")
        return _client_redirect("/login", error="google_auth_failed")

    try:
        state_payload = decode_oauth_state(state)
    except InvalidToken:
        log.info("auth.google_failure", reason="bad_state")
        return _client_redirect("/login", error="google_auth_failed")

    try:
        profile = await google_oauth.fetch_profile(code)
    except (httpx.HTTPError, KeyError) as e:
        log.warning("auth.google_failure", reason="exchange_failed", error=str(e))
        return _client_redirect("/login", error="google_auth_failed")

    user = await user_service.find_or_create_google_user(
        session,
        email=profile.email,
        full_name=profile.name or "",
        google_id=profile.sub,
        avatar_url=profile.picture,
    )
    await session.commit()

    token, _jti = create_jwt(user.id, user.email)
    pending = await _consume_ticket(session, state_payload.get("ticket"), user)

    redirect = _client_redirect(
        "/auth/callback",
        token=token,
        pending_join=pending.status.value if pending else None,
        context_id=str(pending.context_id) if pending and pending.context_id else None,
    )
    _set_session_cookies(redirect, token, generate_csrf_token())
    return redirect


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.get("/me")
async def me(auth: AuthenticatedUser = Depends(get_current_user)):
    return ok({"user": _user_response(auth.user)})


@router.post("/refresh")
async def refresh_session(
    response: Response,
    auth: AuthenticatedUser = Depends(get_current_user),
):
    """Issue a new JWT and revoke the current one."""
    token = _issue_session(response, auth.user)
    if auth.jti:
        await revoke_jwt(auth.jti)
    return ok({"token": token}, message="Session refreshed")


@router.post("/logout")
async def logout(
    response: Response,
    auth: AuthenticatedUser = Depends(get_current_user),
):
    """Invalidate the current session."""
    if auth.jti:
        await revoke_jwt(auth.jti)
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    log.info("auth.logout", user_id=str(auth.user_id))
    return ok(message="Logged out")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    result = await user_service.request_password_reset(session, str(body.email))
    data = {"email_sent": result.email_sent}
    if result.dev_mode:
        data["dev_mode"] = True
    return ok(data, message=result.message)


@router.post("/verify-reset-token")
async def verify_reset_token(
    body: VerifyResetTokenRequest,
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.verify_reset_token(session, body.token)
    return ok({"email": user.email}, message="Token is valid")


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    await user_service.reset_password(session, body.token, body.password)
    await session.commit()
    return ok(
        message="Password has been reset successfully. You can now login with your new password."
    )
