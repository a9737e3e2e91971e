"""Spotify Authorization Code flow.

Web-flow helpers used by the API server: build the authorize URL, exchange a
callback code for tokens, refresh an access token and fetch the current
user's Spotify profile.  Token calls authenticate the app with HTTP Basic
(client id / secret).
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any
from urllib.parse import urlencode

from aiohttp import ClientError, ClientSession

import config
from errors import PreconditionError, ProviderRequestError, TokenRefreshError

logger = logging.getLogger(__name__)

SCOPES = " ".join(
    [
        "user-read-private",
        "user-read-email",
        "playlist-modify-public",
        "playlist-modify-private",
        "user-library-read",
        "user-library-modify",
        "user-top-read",
        "user-read-recently-played",
        "streaming",
        "user-read-playback-state",
        "user-modify-playback-state",
    ]
)

SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_ME_URL = "https://api.spotify.com/v1/me"


def _require_configured() -> None:
    if not config.SPOTIFY_CONFIGURED:
        raise PreconditionError("Spotify integration is not configured")


def _basic_auth_header() -> dict[str, str]:
    raw = f"{config.SPOTIFY_CLIENT_ID}:{config.SPOTIFY_CLIENT_SECRET}".encode()
    return {"Authorization": f"Basic {base64.b64encode(raw).decode()}"}


def build_authorize_url(state: str) -> str:
    """Return the Spotify authorize URL the frontend should redirect to."""
    _require_configured()
    params = urlencode(
        {
            "client_id": config.SPOTIFY_CLIENT_ID,
            "response_type": "code",
            "redirect_uri": config.SPOTIFY_REDIRECT_URI,
            "scope": SCOPES,
            "state": state,
        }
    )
    return f"{SPOTIFY_AUTH_URL}?{params}"


async def _post_token(form: dict[str, str]) -> tuple[int, Any]:
    async with ClientSession() as session:
        async with session.post(
            SPOTIFY_TOKEN_URL,
            data=form,
            headers=_basic_auth_header(),
        ) as resp:
            body = await resp.json(content_type=None)
            return resp.status, body


async def exchange_code(code: str) -> dict[str, Any]:
    """Exchange an authorization *code* for a token payload.

    Returns the full Spotify response which includes at least::

        {
            "access_token": "...",
            "token_type": "Bearer",
            "scope": "...",
            "expires_in": 3600,
            "refresh_token": "..."
        }
    """
    _require_configured()
    try:
        status, body = await _post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.SPOTIFY_REDIRECT_URI,
            }
        )
    except (ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.error(f"[token] Code exchange failed: {type(e).__name__}: {e}")
        raise ProviderRequestError("Could not obtain Spotify token") from e

    if status != 200:
        logger.error(f"[token] Code exchange HTTP {status}: {body}")
        raise ProviderRequestError("Could not obtain Spotify token", status=status, payload=body)
    return body


async def refresh_access_token(refresh_token: str) -> dict[str, Any]:
    """Use a refresh token to obtain a new access token from Spotify.

    The response may or may not carry a new ``refresh_token``.
    """
    _require_configured()
    try:
        status, body = await _post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
    except (ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.error(f"[token] Refresh failed: {type(e).__name__}: {e}")
        raise TokenRefreshError() from e

    if status != 200:
        logger.error(f"[token] Refresh HTTP {status}: {body}")
        raise TokenRefreshError(payload=body)
    return body


async def get_spotify_user(access_token: str) -> dict[str, Any]:
    """Fetch the current user's Spotify profile (/v1/me)."""
    try:
        async with ClientSession() as session:
            async with session.get(
                SPOTIFY_ME_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            ) as resp:
                body = await resp.json(content_type=None)
                status = resp.status
    except (ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.error(f"[profile] Request failed: {type(e).__name__}: {e}")
        raise ProviderRequestError("Could not fetch Spotify profile") from e

    if status != 200:
        logger.error(f"[profile] HTTP {status}: {body}")
        raise ProviderRequestError("Could not fetch Spotify profile", status=status, payload=body)
    return body
