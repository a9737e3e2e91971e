"""Spotify Web API helpers – recommendations, search, playlists and playback.

Every helper takes a user access token (see ``token_manager``).  Non-2xx
responses and transport errors are logged with the response payload and
raised as :class:`errors.ProviderRequestError`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from aiohttp import ClientError, ClientSession

from errors import ProviderRequestError
from models import Album, Artist, Playlist, RecommendationParams, Track

SPOTIFY_API = "https://api.spotify.com/v1"

# Spotify accepts at most 100 URIs per add-items request.
MAX_TRACKS_PER_REQUEST = 100

# Maximum retries when Spotify returns 429 (Too Many Requests).
_MAX_RETRIES = 5

logger = logging.getLogger(__name__)


def _auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _read_body(resp) -> Any:
    text = await resp.text()
    if not text:
        return None
    try:
        return await resp.json(content_type=None)
    except ValueError:
        return text


def _retry_after(headers) -> int:
    """Seconds to wait from a 429 response; 1 when the header is missing or not an integer."""
    try:
        return max(0, int(headers.get("Retry-After", 1)))
    except (TypeError, ValueError):
        return 1


async def _request(
    method: str,
    path: str,
    token: str,
    tag: str,
    message: str,
    params: Optional[dict[str, Any]] = None,
    json: Optional[dict[str, Any]] = None,
) -> Any:
    """Perform one Spotify API call and return the decoded body.

    429 responses are retried after ``Retry-After`` seconds; anything else
    outside 2xx raises ``ProviderRequestError``.
    """
    url = f"{SPOTIFY_API}{path}"
    try:
        async with ClientSession() as session:
            for attempt in range(_MAX_RETRIES):
                async with session.request(
                    method, url, headers=_auth_header(token), params=params, json=json
                ) as resp:
                    if resp.status == 429:
                        retry_after = _retry_after(resp.headers)
                        logger.warning(
                            f"[{tag}] Rate limited (429). Waiting {retry_after}s "
                            f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                        )
                        await asyncio.sleep(retry_after)
                        continue

                    body = await _read_body(resp)
                    if not 200 <= resp.status < 300:
                        logger.error(f"[{tag}] HTTP {resp.status}: {str(body)[:200]}")
                        raise ProviderRequestError(message, status=resp.status, payload=body)
                    return body
    except (ClientError, asyncio.TimeoutError, ValueError) as e:
        # ValueError covers undecodable bodies (UnicodeDecodeError).
        logger.error(f"[{tag}] Request failed: {type(e).__name__}: {e}")
        raise ProviderRequestError(message) from e

    raise ProviderRequestError(f"{message} (rate limit exceeded)", status=429)


def _first_image(images: Optional[list[dict]]) -> Optional[str]:
    return images[0].get("url") if images else None


def parse_track(item: dict[str, Any]) -> Track:
    """Convert a Spotify track object into a :class:`Track`.

    Raises ``KeyError``/``TypeError`` on objects missing required fields.
    """
    album = item.get("album") or {}
    return Track(
        spotify_id=item["id"],
        name=item["name"],
        artists=[Artist(name=a["name"], spotify_id=a.get("id")) for a in item["artists"]],
        album=Album(
            name=album.get("name", ""),
            images=[img["url"] for img in album.get("images", []) if img.get("url")],
        ),
        duration_ms=item.get("duration_ms", 0),
        external_url=(item.get("external_urls") or {}).get("spotify", ""),
        popularity=item.get("popularity", 0),
        explicit=item.get("explicit", False),
        preview_url=item.get("preview_url"),
    )


def _parse_tracks(items: Any, tag: str, message: str) -> list[Track]:
    try:
        return [parse_track(item) for item in items if item]
    except (KeyError, TypeError) as e:
        logger.error(f"[{tag}] Malformed track payload: {type(e).__name__}: {e}")
        raise ProviderRequestError(message, payload=items) from e


def parse_playlist(data: dict[str, Any], track_count: Optional[int] = None) -> Playlist:
    tracks_field = data.get("tracks")
    if track_count is None:
        track_count = tracks_field.get("total", 0) if isinstance(tracks_field, dict) else 0
    return Playlist(
        spotify_id=data["id"],
        name=data["name"],
        external_url=(data.get("external_urls") or {}).get("spotify", ""),
        track_count=track_count,
        description=data.get("description"),
        owner=(data.get("owner") or {}).get("display_name"),
        image_url=_first_image(data.get("images")),
        public=bool(data.get("public", False)),
    )


# ---------------------------------------------------------------------------
# Recommendations & search
# ---------------------------------------------------------------------------

async def get_recommendations(token: str, params: RecommendationParams) -> list[Track]:
    """Query /recommendations with seed genres, target features and tempo band."""
    message = "Spotify recommendations failed"
    data = await _request(
        "GET",
        "/recommendations",
        token,
        tag="recommendations",
        message=message,
        params={
            "seed_genres": params.seed_genres,
            "target_valence": params.target_valence,
            "target_energy": params.target_energy,
            "target_danceability": params.target_danceability,
            "min_tempo": params.min_tempo,
            "max_tempo": params.max_tempo,
            "limit": params.limit,
            "market": params.market,
        },
    )
    if not isinstance(data, dict) or not isinstance(data.get("tracks"), list):
        logger.error(f"[recommendations] Unexpected payload: {str(data)[:200]}")
        raise ProviderRequestError(message, payload=data)
    return _parse_tracks(data["tracks"], "recommendations", message)


async def search_tracks(token: str, query: str, limit: int = 20, market: str = "US") -> list[Track]:
    """Catalog search for tracks matching *query*."""
    message = "Spotify search failed"
    data = await _request(
        "GET",
        "/search",
        token,
        tag="search",
        message=message,
        params={"q": query, "type": "track", "limit": limit, "market": market},
    )
    try:
        items = data["tracks"]["items"]
    except (KeyError, TypeError) as e:
        logger.error(f"[search] Unexpected payload: {str(data)[:200]}")
        raise ProviderRequestError(message, payload=data) from e
    return _parse_tracks(items, "search", message)


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

async def get_user_playlists(token: str, limit: int = 20) -> list[Playlist]:
    data = await _request(
        "GET", "/me/playlists", token,
        tag="playlists", message="Could not fetch playlists",
        params={"limit": limit},
    )
    return [parse_playlist(p) for p in (data or {}).get("items", [])]


async def get_playlist(token: str, playlist_id: str) -> tuple[Playlist, list[Track]]:
    """Playlist metadata plus its (first page of) tracks."""
    message = "Could not fetch playlist"
    data = await _request(
        "GET", f"/playlists/{playlist_id}", token,
        tag="playlist", message=message,
    )
    if not isinstance(data, dict) or "id" not in data:
        logger.error(f"[playlist] Unexpected payload: {str(data)[:200]}")
        raise ProviderRequestError(message, payload=data)
    items = (data.get("tracks") or {}).get("items", [])
    tracks = _parse_tracks(
        [item.get("track") for item in items if item.get("track") and item["track"].get("id")],
        "playlist",
        message,
    )
    return parse_playlist(data), tracks


async def create_new_playlist(
    token: str,
    user_id: str,
    name: str,
    description: str = "Creada por Moodify",
    public: bool = False,
) -> Playlist:
    """Create a new empty playlist under the user's Spotify account."""
    data = await _request(
        "POST", f"/users/{user_id}/playlists", token,
        tag="create_playlist", message="Could not create Spotify playlist",
        json={"name": name, "description": description, "public": public},
    )
    return parse_playlist(data, track_count=0)


async def add_tracks_to_playlist(token: str, playlist_id: str, track_uris: list[str]) -> None:
    """Add one batch (≤100) of track URIs to a playlist."""
    if len(track_uris) > MAX_TRACKS_PER_REQUEST:
        raise ValueError(f"At most {MAX_TRACKS_PER_REQUEST} URIs per request, got {len(track_uris)}")
    await _request(
        "POST", f"/playlists/{playlist_id}/tracks", token,
        tag="add_tracks", message="Could not add tracks to playlist",
        json={"uris": track_uris},
    )


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------

async def get_devices(token: str) -> list[dict[str, Any]]:
    data = await _request(
        "GET", "/me/player/devices", token,
        tag="devices", message="Could not fetch devices",
    )
    return (data or {}).get("devices", [])


async def play(
    token: str,
    context_uri: Optional[str] = None,
    uris: Optional[list[str]] = None,
    device_id: Optional[str] = None,
) -> None:
    body: dict[str, Any] = {}
    if context_uri:
        body["context_uri"] = context_uri
    if uris:
        body["uris"] = uris
    await _request(
        "PUT", "/me/player/play", token,
        tag="play",
        message="Could not start playback. Spotify Premium and an active device are required",
        params={"device_id": device_id} if device_id else None,
        json=body,
    )


async def pause(token: str, device_id: Optional[str] = None) -> None:
    await _request(
        "PUT", "/me/player/pause", token,
        tag="pause", message="Could not pause playback",
        params={"device_id": device_id} if device_id else None,
    )
