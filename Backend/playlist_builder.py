"""Assemble a Spotify playlist for a mood.

token → tracks (tiered retrieval) → create playlist → add tracks in
sequential batches of at most 100 so the insertion order is preserved.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

import recommendation
import spotify_client
import track_retrieval
from errors import EmptyResultError
from models import MoodPlaylist, MoodType, User
from token_manager import TokenManager

logger = logging.getLogger(__name__)


def chunked(items: list[str], size: int = spotify_client.MAX_TRACKS_PER_REQUEST) -> list[list[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def add_tracks_in_batches(token: str, playlist_id: str, track_uris: list[str]) -> int:
    """Insert URIs one batch at a time; returns the number of batches sent."""
    batches = chunked(track_uris)
    for batch in batches:
        await spotify_client.add_tracks_to_playlist(token, playlist_id, batch)
    logger.info(f"[add_tracks] Added {len(track_uris)} tracks in {len(batches)} batch(es)")
    return len(batches)


async def create_mood_playlist(
    tokens: TokenManager,
    user: User,
    mood: MoodType,
    intensity: int,
    user_genres: Optional[list[str]] = None,
    custom_name: Optional[str] = None,
    limit: int = recommendation.DEFAULT_LIMIT,
    today: Optional[date] = None,
) -> MoodPlaylist:
    access_token = await tokens.ensure_valid_token(user)

    tracks = await track_retrieval.get_tracks(access_token, mood, intensity, user_genres, limit)
    if not tracks:
        raise EmptyResultError()

    name = custom_name or recommendation.playlist_name(mood, intensity, today)
    created = await spotify_client.create_new_playlist(
        access_token,
        user.spotify_id,
        name,
        description=recommendation.playlist_description(mood),
        public=False,
    )
    logger.info(f"[create_playlist] Created '{name}' ({created.spotify_id}) for {user.spotify_id}")

    await add_tracks_in_batches(access_token, created.spotify_id, [t.uri for t in tracks])

    return MoodPlaylist(playlist=replace(created, track_count=len(tracks)), tracks=tracks)
