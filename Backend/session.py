"""Signed session tokens handed to the frontend after Spotify login.

Sent back on every request as ``Authorization: Bearer <jwt>``.  Claims:

    sub   Spotify user id (lookup key in ``moodify_users``)
    uid   PocketBase record id of the user
    name  display name, for the UI only
    iss   always ``moodify``

Spotify credentials are never placed in the token.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt  # PyJWT

import config
from models import User

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_ISSUER = "moodify"
_SESSION_TTL = 7 * 24 * 3600
_REQUIRED_CLAIMS = ["sub", "uid", "exp", "iss"]


@dataclass(frozen=True)
class Session:
    spotify_id: str
    user_id: str
    display_name: str
    expires_at: int


def create_session_token(user: User, ttl: int = _SESSION_TTL) -> str:
    issued = int(time.time())
    claims = {
        "sub": user.spotify_id,
        "uid": user.id,
        "name": user.display_name,
        "iss": _ISSUER,
        "iat": issued,
        "exp": issued + ttl,
    }
    return jwt.encode(claims, config.JWT_SECRET, algorithm=_ALGORITHM)


def verify_session_token(token: str) -> Optional[Session]:
    """Decode *token*; None when the signature, expiry, issuer or claims are wrong."""
    try:
        claims = jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[_ALGORITHM],
            issuer=_ISSUER,
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.InvalidTokenError as e:
        logger.info(f"[session] Rejected token: {type(e).__name__}")
        return None
    return Session(
        spotify_id=claims["sub"],
        user_id=claims["uid"],
        display_name=claims.get("name", ""),
        expires_at=int(claims["exp"]),
    )
