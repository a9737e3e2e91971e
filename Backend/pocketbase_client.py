"""User records and Spotify credentials in PocketBase.

Tokens live only on the server; the frontend holds a session JWT.  Expected
``moodify_users`` fields (a plain base collection, not an auth collection):

    spotify_id      (text, unique)
    display_name    (text)
    email           (text, optional)
    avatar_url      (text, optional)
    access_token    (text)
    refresh_token   (text)
    token_expires   (number)  – unix seconds
    is_premium      (bool)

The module-level async functions satisfy ``token_manager.CredentialStore``,
so the module itself is passed to ``TokenManager``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from pocketbase import PocketBase
from pocketbase.utils import ClientResponseError

import config
from models import SpotifyCredential, User

logger = logging.getLogger(__name__)

_client = PocketBase(config.POCKETBASE_URL)
_COLLECTION = "moodify_users"
_admin_token_expires_at: float = 0.0


def _ensure_admin_auth(force: bool = False) -> None:
    """Log in as superuser when there is no token or it is about to lapse.

    PocketBase superuser tokens last about a day; we treat them as valid for
    23 hours and renew 5 minutes early.
    """
    global _admin_token_expires_at

    now = time.time()
    if force or not _client.auth_store.token or now >= _admin_token_expires_at - 300:
        _client.collection("_superusers").auth_with_password(
            config.POCKETBASE_ADMIN_EMAIL,
            config.POCKETBASE_ADMIN_PASSWORD,
        )
        _admin_token_expires_at = now + 23 * 3600


def with_reauth(func, *args, **kwargs):
    """Call *func*; on a 401/403 log in again and retry once."""
    try:
        return func(*args, **kwargs)
    except ClientResponseError as e:
        if e.status not in (401, 403):
            raise
        _ensure_admin_auth(force=True)
        return func(*args, **kwargs)


def get_client() -> PocketBase:
    """Authenticated SDK client, shared with ``mood_store``."""
    _ensure_admin_auth()
    return _client


# ---------------------------------------------------------------------------
# Record conversion
# ---------------------------------------------------------------------------

def _record_to_user(record: Any) -> User:
    """Convert a PocketBase record object to a :class:`User`."""
    access_token = getattr(record, "access_token", "") or ""
    refresh_token = getattr(record, "refresh_token", "") or ""
    credential = None
    if access_token and refresh_token:
        credential = SpotifyCredential(
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires=int(getattr(record, "token_expires", 0) or 0),
        )
    return User(
        id=record.id,
        spotify_id=getattr(record, "spotify_id", "") or "",
        display_name=getattr(record, "display_name", "") or "",
        email=getattr(record, "email", None) or None,
        avatar_url=getattr(record, "avatar_url", None) or None,
        is_premium=bool(getattr(record, "is_premium", False)),
        credential=credential,
    )


def _credential_payload(credential: Optional[SpotifyCredential]) -> dict[str, Any]:
    if credential is None:
        return {"access_token": "", "refresh_token": "", "token_expires": 0}
    return {
        "access_token": credential.access_token,
        "refresh_token": credential.refresh_token,
        "token_expires": credential.token_expires,
    }


# ---------------------------------------------------------------------------
# Synchronous helpers (run inside asyncio.to_thread)
# ---------------------------------------------------------------------------

def _find_record_by_spotify_id_sync(spotify_id: str) -> Optional[Any]:
    _ensure_admin_auth()
    result = with_reauth(
        _client.collection(_COLLECTION).get_list,
        1, 1, {"filter": f'spotify_id="{spotify_id}"'}
    )
    return result.items[0] if result.items else None


def _find_by_spotify_id_sync(spotify_id: str) -> Optional[User]:
    record = _find_record_by_spotify_id_sync(spotify_id)
    return _record_to_user(record) if record else None


def _upsert_user_sync(
    spotify_id: str,
    display_name: str,
    email: Optional[str],
    avatar_url: Optional[str],
    is_premium: bool,
    credential: SpotifyCredential,
) -> User:
    payload = {
        "spotify_id": spotify_id,
        "display_name": display_name,
        "email": email or "",
        "avatar_url": avatar_url or "",
        "is_premium": is_premium,
        **_credential_payload(credential),
    }

    existing = _find_record_by_spotify_id_sync(spotify_id)
    if existing:
        record = with_reauth(_client.collection(_COLLECTION).update, existing.id, payload)
    else:
        record = with_reauth(_client.collection(_COLLECTION).create, payload)
    return _record_to_user(record)


def _update_user_sync(user_id: str, payload: dict[str, Any]) -> None:
    _ensure_admin_auth()
    try:
        with_reauth(_client.collection(_COLLECTION).update, user_id, payload)
    except ClientResponseError as e:
        if e.status == 404:
            raise LookupError(f"User {user_id} not found in PocketBase") from e
        raise


# ---------------------------------------------------------------------------
# Async public API (wraps sync SDK calls via to_thread)
# ---------------------------------------------------------------------------

async def upsert_user(
    spotify_id: str,
    display_name: str,
    email: Optional[str],
    avatar_url: Optional[str],
    is_premium: bool,
    credential: SpotifyCredential,
) -> User:
    """Create or update a user record together with its credential."""
    return await asyncio.to_thread(
        _upsert_user_sync,
        spotify_id, display_name, email, avatar_url, is_premium, credential,
    )


async def get_user(spotify_id: str) -> Optional[User]:
    """Fetch a user (with credential) by Spotify ID, or None if not found."""
    return await asyncio.to_thread(_find_by_spotify_id_sync, spotify_id)


async def update_credential(user_id: str, credential: SpotifyCredential) -> None:
    """Replace the stored token fields after a refresh."""
    await asyncio.to_thread(_update_user_sync, user_id, _credential_payload(credential))


async def clear_credential(user_id: str) -> None:
    """Unset all credential fields and the premium flag (disconnect)."""
    await asyncio.to_thread(
        _update_user_sync, user_id, {**_credential_payload(None), "is_premium": False},
    )
