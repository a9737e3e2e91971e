"""Track retrieval for a mood.

Two tiers:

1. ``/recommendations`` seeded with genres and target audio features.  The
   provider's ordering is kept.
2. If tier 1 fails for any reason (transport error, non-2xx, malformed or
   empty payload) a single plain catalog search scoped to one genre is
   issued instead.  Zero tracks from that search is a valid result.
"""

from __future__ import annotations

import logging
from typing import Optional

import config
import mood_profiles
import recommendation
import spotify_client
from errors import ProviderRequestError
from models import MoodType, Track

logger = logging.getLogger(__name__)


def fallback_genre(mood: MoodType, user_genres: Optional[list[str]] = None) -> str:
    if user_genres:
        return user_genres[0]
    return mood_profiles.lookup(mood).genres[0]


async def search_by_genre(
    token: str,
    mood: MoodType,
    user_genres: Optional[list[str]] = None,
    limit: int = recommendation.DEFAULT_LIMIT,
) -> list[Track]:
    """Tier 2: genre-only catalog search, no keyword terms."""
    genre = fallback_genre(mood, user_genres)
    return await spotify_client.search_tracks(
        token, f'genre:"{genre}"', limit=limit, market=config.SPOTIFY_MARKET
    )


async def get_tracks(
    token: str,
    mood: MoodType,
    intensity: int,
    user_genres: Optional[list[str]] = None,
    limit: int = recommendation.DEFAULT_LIMIT,
) -> list[Track]:
    params = recommendation.build_params(
        mood, intensity, user_genres, limit=limit, market=config.SPOTIFY_MARKET
    )
    try:
        tracks = await spotify_client.get_recommendations(token, params)
    except ProviderRequestError as e:
        logger.warning(
            f"[tracks] Recommendations failed for {MoodType(mood).value} "
            f"(status={e.status}), falling back to genre search"
        )
    else:
        if tracks:
            return tracks
        logger.warning(
            f"[tracks] Recommendations empty for {MoodType(mood).value}, "
            "falling back to genre search"
        )

    return await search_by_genre(token, mood, user_genres, limit)


async def search_by_mood_text(
    token: str,
    mood: MoodType,
    intensity: int,
    user_genres: Optional[list[str]] = None,
    limit: int = recommendation.DEFAULT_LIMIT,
) -> list[Track]:
    """Single-tier text search: first genre plus the mood's first keyword."""
    profile = recommendation.music_profile(mood, intensity)
    genres = user_genres or list(profile.genres)
    query = f"genre:{genres[0]} {profile.keywords[0]}"
    return await spotify_client.search_tracks(
        token, query, limit=limit, market=config.SPOTIFY_MARKET
    )
