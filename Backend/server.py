"""FastAPI server: Spotify OAuth, mood logging and mood playlists.

Endpoints
---------
GET  /auth/login                 → redirect user to Spotify
GET  /auth/callback              → connect account, issue JWT, redirect to frontend
GET  /auth/me                    → current user (requires JWT)

POST /spotify/disconnect         → forget the user's Spotify credential
GET  /spotify/profile            → Spotify profile
GET  /spotify/capabilities       → connected / premium summary
GET  /spotify/playlists          → user's playlists
GET  /spotify/playlist/{id}      → playlist details with tracks
POST /spotify/search-tracks      → tracks for a mood (recommendations + fallback)
POST /spotify/search-text        → single text search for a mood
GET  /spotify/devices            → playback devices
GET  /spotify/player-token       → valid access token for the Web Playback SDK
POST /spotify/play               → start playback (Premium)
POST /spotify/pause              → pause playback (Premium)

POST   /moods                    → log a mood, returns its music profile
GET    /moods                    → list moods (paginated, filterable)
GET    /moods/search             → text search over moods
GET    /moods/analytics          → distribution, averages, trend
GET    /moods/top                → most frequent moods
GET    /moods/stats              → stats per week / month / year
GET    /moods/{id}               → one mood
PATCH  /moods/{id}               → update a mood
DELETE /moods/{id}               → delete a mood
POST   /moods/{id}/rate          → rate the generated playlist
POST   /moods/{id}/listened      → mark the playlist as listened
POST   /moods/{id}/playlist      → build a Spotify playlist for the mood

All protected routes use the ``current_user`` dependency, which resolves the
JWT to a user record *including* the Spotify credential.

Run with::

    uvicorn server:app --host 0.0.0.0 --port 8888 --reload
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import asdict
from datetime import datetime
from typing import Any, List, Literal, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

import config
import pocketbase_client
import recommendation
import spotify_auth
import spotify_client
import track_retrieval
from errors import (
    EmptyResultError,
    MoodifyError,
    NotConnectedError,
    PreconditionError,
    ProviderRequestError,
    TokenRefreshError,
    ValidationError,
)
from models import Mood, MoodMusicProfile, MoodType, Track, User
from mood_service import MoodInput, MoodService
from playlist_builder import create_mood_playlist
from session import Session, create_session_token, verify_session_token
from token_manager import TokenManager

# Set up logging
logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s - %(message)s",
)
# Silence noisy HTTP libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

# In-memory state store (for CSRF protection during OAuth).
_pending_states: set[str] = set()

tokens = TokenManager(store=pocketbase_client)
moods = MoodService()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(title="Moodify API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming request path for debugging."""
    logger.info(f"[request] {request.method} {request.url.path}")
    return await call_next(request)


_ERROR_STATUS = {
    NotConnectedError: 400,
    ValidationError: 400,
    PreconditionError: 403,
    TokenRefreshError: 401,
    EmptyResultError: 404,
    ProviderRequestError: 502,
}


@app.exception_handler(MoodifyError)
async def domain_error_handler(request: Request, exc: MoodifyError):
    status = next((code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content={"success": False, "message": exc.message})


# ---------------------------------------------------------------------------
# Auth dependencies
# ---------------------------------------------------------------------------

async def require_auth(request: Request) -> Session:
    """Validate the JWT and return the session it carries.

    Raises 401 if the token is missing or invalid.
    """
    auth = request.headers.get("Authorization", "")
    token: Optional[str] = auth[7:] if auth.startswith("Bearer ") else None
    session = verify_session_token(token) if token else None
    if session is None:
        raise HTTPException(status_code=401, detail="Missing or invalid session token")
    return session


async def current_user(session: Session = Depends(require_auth)) -> User:
    user = await pocketbase_client.get_user(session.spotify_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def connected_user(user: User = Depends(current_user)) -> User:
    if not user.is_connected:
        raise NotConnectedError()
    return user


async def premium_user(user: User = Depends(connected_user)) -> User:
    if not user.is_premium:
        raise PreconditionError("Spotify Premium is required for playback control")
    return user


# ---------------------------------------------------------------------------
# Request bodies & serialisation
# ---------------------------------------------------------------------------

class MoodBody(BaseModel):
    mood_type: MoodType
    intensity: int = Field(ge=1, le=4)
    description: Optional[str] = Field(default=None, max_length=500)
    tags: List[str] = []
    weather: Optional[str] = None
    location: Optional[str] = None
    activity: Optional[str] = None
    social_context: Optional[str] = None
    preferred_genres: List[str] = []
    energy_level: int = Field(default=5, ge=1, le=10)
    valence: int = Field(default=5, ge=1, le=10)

    def to_input(self) -> MoodInput:
        return MoodInput(**self.model_dump())


class MoodPatch(BaseModel):
    mood_type: Optional[MoodType] = None
    intensity: Optional[int] = Field(default=None, ge=1, le=4)
    description: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
    weather: Optional[str] = None
    location: Optional[str] = None
    activity: Optional[str] = None
    social_context: Optional[str] = None
    preferred_genres: Optional[List[str]] = None
    energy_level: Optional[int] = Field(default=None, ge=1, le=10)
    valence: Optional[int] = Field(default=None, ge=1, le=10)


# Null in a PATCH body leaves these unchanged; other fields are cleared.
_NON_NULLABLE_FIELDS = {"mood_type", "intensity", "tags", "preferred_genres", "energy_level", "valence"}


class SearchTracksBody(BaseModel):
    mood_type: MoodType
    intensity: int = Field(ge=1, le=4)
    genres: Optional[List[str]] = None
    limit: int = Field(default=recommendation.DEFAULT_LIMIT, ge=1, le=50)


class RateBody(BaseModel):
    rating: int
    feedback: Optional[str] = None


class PlaylistBody(BaseModel):
    custom_name: Optional[str] = None


class PlayBody(BaseModel):
    context_uri: Optional[str] = None
    uris: Optional[List[str]] = None
    device_id: Optional[str] = None


class PauseBody(BaseModel):
    device_id: Optional[str] = None


def _track_to_dict(t: Track) -> dict[str, Any]:
    return {
        "id": t.spotify_id,
        "name": t.name,
        "artist": t.artists[0].name if t.artists else "",
        "artists": ", ".join(a.name for a in t.artists),
        "album": t.album.name,
        "image": t.album.images[0] if t.album.images else None,
        "preview_url": t.preview_url,
        "spotify_url": t.external_url,
        "duration_ms": t.duration_ms,
        "explicit": t.explicit,
        "popularity": t.popularity,
    }


def _profile_to_dict(p: MoodMusicProfile) -> dict[str, Any]:
    data = asdict(p)
    data["genres"] = list(p.genres)
    data["keywords"] = list(p.keywords)
    return data


def _mood_to_dict(m: Mood) -> dict[str, Any]:
    return asdict(m)


async def _owned_mood(user: User, mood_id: str) -> Mood:
    mood = await moods.get(user.id, mood_id)
    if not mood:
        raise HTTPException(status_code=404, detail="Mood not found")
    return mood


# ---------------------------------------------------------------------------
# Auth routes
# ---------------------------------------------------------------------------

@app.get("/")
async def root():
    """Health check / root endpoint."""
    return {
        "status": "ok",
        "service": "Moodify API",
        "spotify_configured": config.SPOTIFY_CONFIGURED,
        "docs": "/docs",
    }


@app.get("/auth/login")
async def login():
    """Redirect to Spotify authorize page."""
    state = secrets.token_urlsafe(16)
    url = spotify_auth.build_authorize_url(state)
    _pending_states.add(state)
    return RedirectResponse(url)


@app.get("/auth/callback")
async def callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
):
    """Handle Spotify redirect after the user approves (or rejects)."""
    if error:
        raise HTTPException(status_code=400, detail=f"Spotify auth error: {error}")

    if not state or state not in _pending_states:
        raise HTTPException(status_code=400, detail="Invalid state parameter")
    _pending_states.discard(state)

    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    user = await tokens.connect(code)
    jwt_token = create_session_token(user)

    frontend_base = config.FRONTEND_URL.rstrip("/")
    return RedirectResponse(f"{frontend_base}/home?token={jwt_token}", status_code=302)


@app.get("/auth/me")
async def me(user: User = Depends(current_user)):
    """Return current user profile (requires JWT)."""
    return {
        "spotify_id": user.spotify_id,
        "display_name": user.display_name,
        "email": user.email or "",
        "avatar_url": user.avatar_url or "",
        "is_premium": user.is_premium,
        "spotify_connected": user.is_connected,
    }


# ---------------------------------------------------------------------------
# Spotify routes
# ---------------------------------------------------------------------------

@app.post("/spotify/disconnect")
async def disconnect(user: User = Depends(connected_user)):
    await tokens.disconnect(user)
    return {"success": True, "message": "Spotify account disconnected"}


@app.get("/spotify/profile")
async def spotify_profile(user: User = Depends(connected_user)):
    access_token = await tokens.ensure_valid_token(user)
    return {"profile": await spotify_auth.get_spotify_user(access_token)}


@app.get("/spotify/capabilities")
async def capabilities(user: User = Depends(current_user)):
    """What the user can do with their current Spotify connection."""
    return {
        "connected": user.is_connected,
        "premium": user.is_premium,
        "can_create_playlists": user.is_connected,
        "can_control_playback": user.is_connected and user.is_premium,
        "token_state": tokens.state(user).value,
    }


@app.get("/spotify/playlists")
async def my_playlists(
    limit: int = Query(20, ge=1, le=50),
    user: User = Depends(connected_user),
):
    access_token = await tokens.ensure_valid_token(user)
    playlists = await spotify_client.get_user_playlists(access_token, limit)
    return {"playlists": [asdict(p) for p in playlists]}


@app.get("/spotify/playlist/{playlist_id}")
async def playlist_details(playlist_id: str, user: User = Depends(connected_user)):
    access_token = await tokens.ensure_valid_token(user)
    playlist, tracks = await spotify_client.get_playlist(access_token, playlist_id)
    return {"playlist": asdict(playlist), "tracks": [_track_to_dict(t) for t in tracks]}


@app.post("/spotify/search-tracks")
async def search_tracks(body: SearchTracksBody, user: User = Depends(connected_user)):
    """Tracks for a mood: recommendations, falling back to a genre search."""
    access_token = await tokens.ensure_valid_token(user)
    tracks = await track_retrieval.get_tracks(
        access_token, body.mood_type, body.intensity, body.genres, body.limit
    )
    return {"tracks": [_track_to_dict(t) for t in tracks], "total": len(tracks)}


@app.post("/spotify/search-text")
async def search_text(body: SearchTracksBody, user: User = Depends(connected_user)):
    access_token = await tokens.ensure_valid_token(user)
    tracks = await track_retrieval.search_by_mood_text(
        access_token, body.mood_type, body.intensity, body.genres, body.limit
    )
    return {"tracks": [_track_to_dict(t) for t in tracks], "total": len(tracks)}


@app.get("/spotify/devices")
async def devices(user: User = Depends(connected_user)):
    access_token = await tokens.ensure_valid_token(user)
    return {"devices": await spotify_client.get_devices(access_token)}


@app.get("/spotify/player-token")
async def player_token(user: User = Depends(connected_user)):
    access_token = await tokens.ensure_valid_token(user)
    return {"access_token": access_token, "expires_at": user.credential.token_expires}


@app.post("/spotify/play")
async def play(body: PlayBody, user: User = Depends(premium_user)):
    access_token = await tokens.ensure_valid_token(user)
    await spotify_client.play(access_token, body.context_uri, body.uris, body.device_id)
    return {"success": True}


@app.post("/spotify/pause")
async def pause(body: PauseBody, user: User = Depends(premium_user)):
    access_token = await tokens.ensure_valid_token(user)
    await spotify_client.pause(access_token, body.device_id)
    return {"success": True}


# ---------------------------------------------------------------------------
# Mood routes
# ---------------------------------------------------------------------------

@app.post("/moods", status_code=201)
async def create_mood(body: MoodBody, user: User = Depends(current_user)):
    """Log a mood; the response carries the music profile right away."""
    mood, profile = await moods.create(user.id, body.to_input())
    return {"mood": _mood_to_dict(mood), "music_profile": _profile_to_dict(profile)}


@app.get("/moods")
async def list_moods(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    mood_type: Optional[MoodType] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    user: User = Depends(current_user),
):
    result = await moods.list_moods(user.id, page, limit, mood_type, start, end)
    return {
        "moods": [_mood_to_dict(m) for m in result.items],
        "total": result.total,
        "page": result.page,
        "pages": result.pages,
    }


@app.get("/moods/search")
async def search_moods(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(current_user),
):
    result = await moods.search(user.id, q, page, limit)
    return {
        "moods": [_mood_to_dict(m) for m in result.items],
        "total": result.total,
        "page": result.page,
        "pages": result.pages,
    }


@app.get("/moods/analytics")
async def mood_analytics(
    days: int = Query(30, ge=1, le=365),
    user: User = Depends(current_user),
):
    return asdict(await moods.analytics(user.id, days))


@app.get("/moods/top")
async def top_moods(
    limit: int = Query(5, ge=1, le=16),
    user: User = Depends(current_user),
):
    return {"moods": [asdict(t) for t in await moods.top_moods(user.id, limit)]}


@app.get("/moods/stats")
async def mood_stats(
    period: Literal["week", "month", "year"] = Query("month"),
    user: User = Depends(current_user),
):
    return {"period": period, "stats": [asdict(s) for s in await moods.stats_by_period(user.id, period)]}


@app.get("/moods/{mood_id}")
async def get_mood(mood_id: str, user: User = Depends(current_user)):
    mood = await _owned_mood(user, mood_id)
    return {
        "mood": _mood_to_dict(mood),
        "music_profile": _profile_to_dict(
            recommendation.music_profile(mood.mood_type, mood.intensity)
        ),
    }


@app.patch("/moods/{mood_id}")
async def update_mood(mood_id: str, body: MoodPatch, user: User = Depends(current_user)):
    mood = await _owned_mood(user, mood_id)
    merged = {
        "mood_type": mood.mood_type,
        "intensity": mood.intensity,
        "description": mood.description,
        "tags": mood.tags,
        "weather": mood.weather,
        "location": mood.location,
        "activity": mood.activity,
        "social_context": mood.social_context,
        "preferred_genres": mood.preferred_genres,
        "energy_level": mood.energy_level,
        "valence": mood.valence,
        **{
            key: value
            for key, value in body.model_dump(exclude_unset=True).items()
            if value is not None or key not in _NON_NULLABLE_FIELDS
        },
    }
    updated = await moods.update(user.id, mood_id, MoodInput(**merged))
    return {"mood": _mood_to_dict(updated)}


@app.delete("/moods/{mood_id}")
async def delete_mood(mood_id: str, user: User = Depends(current_user)):
    if not await moods.delete(user.id, mood_id):
        raise HTTPException(status_code=404, detail="Mood not found")
    return {"success": True}


@app.post("/moods/{mood_id}/rate")
async def rate_mood_playlist(mood_id: str, body: RateBody, user: User = Depends(current_user)):
    mood = await moods.rate_playlist(user.id, mood_id, body.rating, body.feedback)
    if not mood:
        raise HTTPException(status_code=404, detail="Mood not found")
    return {"mood": _mood_to_dict(mood)}


@app.post("/moods/{mood_id}/listened")
async def mark_listened(mood_id: str, user: User = Depends(current_user)):
    mood = await moods.mark_listened(user.id, mood_id)
    if not mood:
        raise HTTPException(status_code=404, detail="Mood not found")
    return {"mood": _mood_to_dict(mood)}


@app.post("/moods/{mood_id}/playlist", status_code=201)
async def create_playlist_for_mood(
    mood_id: str,
    body: Optional[PlaylistBody] = None,
    user: User = Depends(connected_user),
):
    """Generate a Spotify playlist for a logged mood and remember it on the mood."""
    mood = await _owned_mood(user, mood_id)
    result = await create_mood_playlist(
        tokens,
        user,
        mood.mood_type,
        mood.intensity,
        mood.preferred_genres,
        body.custom_name if body else None,
    )
    await moods.record_playlist(mood, result)

    return {
        "playlist": {
            "id": result.playlist.spotify_id,
            "name": result.playlist.name,
            "url": result.playlist.external_url,
            "tracks_count": result.playlist.track_count,
            "image": result.playlist.image_url,
        },
        "tracks": [_track_to_dict(t) for t in result.tracks],
    }


if __name__ == "__main__":
    uvicorn.run("server:app", host="0.0.0.0", port=8888, reload=True)
