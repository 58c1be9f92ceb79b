"""Google OAuth2 code flow: authorization URL, code exchange, userinfo."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx

from app.core.config import get_settings

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ["openid", "email", "profile"]


@dataclass
class GoogleProfile:
    sub: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def is_configured() -> bool:
    settings = get_settings()
    return bool(settings.google_client_id and settings.google_client_secret)


def authorization_url(state: str) -> str:
    settings = get_settings()
    params = {
        "response_type": "code",
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "scope": " ".join(SCOPES),
        "state": state,
        "prompt": "select_account",
    }
    return f"{AUTHORIZATION_ENDPOINT}?{urlencode(params)}"


async def fetch_profile(code: str) -> GoogleProfile:
    """Exchange an authorization code and read the user's profile.

    Raises httpx.HTTPError on transport or status failures, KeyError when the
    provider response lacks required fields.
    """
    settings = get_settings()
    async with httpx.AsyncClient(timeout=10.0) as client:
        token_response = await client.post(
            TOKEN_ENDPOINT,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.google_redirect_uri,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
            },
        )
        token_response.raise_for_status()
        access_token = token_response.json()["access_token"]

        info_response = await client.get(
            USERINFO_ENDPOINT, headers={"Authorization": f"Bearer {access_token}"}
        )
        info_response.raise_for_status()
        data = info_response.json()

    return GoogleProfile(
        sub=data["sub"],
        email=data["email"],
        name=data.get("name"),
        picture=data.get("picture"),
    )
