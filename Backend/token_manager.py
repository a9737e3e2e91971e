"""Spotify credential lifecycle.

A user's credential is in one of three states::

    DISCONNECTED ──connect()──▶ VALID ──(clock passes expiry)──▶ EXPIRED
          ▲                       ▲                                │
          └──── disconnect() ─────┴────── ensure_valid_token() ────┘

Expiry is never tracked by a timer; it is evaluated each time a token is
requested.  A refreshed credential is written to the store *before* the new
access token is handed back.  Concurrent requests for the same user may both
refresh; Spotify issues a fresh token each time so this is only wasteful.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

import spotify_auth
from errors import NotConnectedError, TokenRefreshError
from models import SpotifyCredential, User

logger = logging.getLogger(__name__)

_DEFAULT_EXPIRES_IN = 3600


class TokenState(str, Enum):
    DISCONNECTED = "disconnected"
    VALID = "connected_valid"
    EXPIRED = "connected_expired"


class CredentialStore(Protocol):
    """Persistence the token manager needs from the record store."""

    async def upsert_user(
        self,
        spotify_id: str,
        display_name: str,
        email: Optional[str],
        avatar_url: Optional[str],
        is_premium: bool,
        credential: SpotifyCredential,
    ) -> User: ...

    async def update_credential(self, user_id: str, credential: SpotifyCredential) -> None: ...

    async def clear_credential(self, user_id: str) -> None: ...


def is_expired(credential: SpotifyCredential, now: float) -> bool:
    return now >= credential.token_expires


def credential_from_token_data(
    token_data: dict[str, Any],
    now: float,
    previous_refresh_token: Optional[str] = None,
) -> SpotifyCredential:
    """Build a credential from a token-endpoint response.

    Spotify may omit ``refresh_token`` on refresh; the previous one then
    stays valid and is kept.
    """
    return SpotifyCredential(
        access_token=token_data["access_token"],
        refresh_token=token_data.get("refresh_token") or previous_refresh_token or "",
        token_expires=int(now) + int(token_data.get("expires_in", _DEFAULT_EXPIRES_IN)),
    )


class TokenManager:
    """Owns connect / refresh / disconnect for Spotify credentials.

    Construct once per process and pass it to whoever needs a token; it keeps
    no per-user state of its own.
    """

    def __init__(
        self,
        store: CredentialStore,
        exchange_code: Callable[[str], Awaitable[dict[str, Any]]] = spotify_auth.exchange_code,
        refresh: Callable[[str], Awaitable[dict[str, Any]]] = spotify_auth.refresh_access_token,
        fetch_profile: Callable[[str], Awaitable[dict[str, Any]]] = spotify_auth.get_spotify_user,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._exchange_code = exchange_code
        self._refresh = refresh
        self._fetch_profile = fetch_profile
        self._clock = clock

    def state(self, user: Optional[User]) -> TokenState:
        if user is None or user.credential is None:
            return TokenState.DISCONNECTED
        if is_expired(user.credential, self._clock()):
            return TokenState.EXPIRED
        return TokenState.VALID

    async def connect(self, code: str) -> User:
        """Exchange an authorization code and store the resulting credential."""
        token_data = await self._exchange_code(code)
        now = self._clock()
        credential = credential_from_token_data(token_data, now)

        profile = await self._fetch_profile(credential.access_token)
        images = profile.get("images") or []

        user = await self._store.upsert_user(
            spotify_id=profile["id"],
            display_name=profile.get("display_name") or profile["id"],
            email=profile.get("email"),
            avatar_url=images[0].get("url") if images else None,
            is_premium=profile.get("product") == "premium",
            credential=credential,
        )
        logger.info(f"Spotify account connected for {user.spotify_id}")
        return user

    async def ensure_valid_token(self, user: User) -> str:
        """Return a non-expired access token, refreshing at most once.

        *user* must carry its secret credential fields.  A failed refresh
        raises ``TokenRefreshError`` and leaves the stored credential as is.
        """
        credential = user.credential
        if credential is None or not credential.access_token or not credential.refresh_token:
            raise NotConnectedError()

        now = self._clock()
        if not is_expired(credential, now):
            return credential.access_token

        logger.info(f"Spotify token expired for {user.spotify_id}, refreshing")
        token_data = await self._refresh(credential.refresh_token)
        if not token_data.get("access_token"):
            logger.error(f"[token] Refresh response without access_token: {token_data}")
            raise TokenRefreshError(payload=token_data)

        refreshed = credential_from_token_data(token_data, now, credential.refresh_token)
        await self._store.update_credential(user.id, refreshed)
        user.credential = refreshed
        return refreshed.access_token

    async def disconnect(self, user: User) -> User:
        await self._store.clear_credential(user.id)
        user.credential = None
        user.is_premium = False
        logger.info(f"Spotify account disconnected for {user.spotify_id}")
        return user
