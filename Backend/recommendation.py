"""Mood + intensity → Spotify query parameters.

Public API
----------
scale(profile, intensity)                       → MoodMusicProfile
music_profile(mood, intensity)                  → MoodMusicProfile
merge_genres(user_genres, profile_genres)       → list[str]
build_params(mood, intensity, user_genres, ...) → RecommendationParams
build_search_query(mood, intensity)             → str
playlist_name(mood, intensity, today)           → str
playlist_description(mood)                      → str
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional

import mood_profiles
from models import MoodIntensity, MoodMusicProfile, MoodType, RecommendationParams, TempoRange

MAX_SEED_GENRES = 5
DEFAULT_LIMIT = 20
DEFAULT_MARKET = "US"

_MIN_TEMPO = 50
_MAX_TEMPO = 200


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return min(hi, max(lo, value))


def _intensity(intensity: int) -> MoodIntensity:
    return MoodIntensity(int(_clamp(int(intensity), MoodIntensity.LOW, MoodIntensity.EXTREME)))


def scale(profile: MoodMusicProfile, intensity: int) -> MoodMusicProfile:
    """Adjust a base profile by intensity (1–4).

    Energy, danceability and tempo follow the intensity; valence and
    acousticness are carried through unchanged.
    """
    multiplier = _intensity(intensity) / 2.5  # 1→0.4, 2→0.8, 3→1.2, 4→1.6

    return replace(
        profile,
        energy=_clamp(profile.energy * multiplier),
        danceability=_clamp(profile.danceability * multiplier),
        tempo=TempoRange(
            min=max(_MIN_TEMPO, math.floor(profile.tempo.min * multiplier)),
            max=min(_MAX_TEMPO, math.floor(profile.tempo.max * multiplier)),
        ),
    )


def music_profile(mood: MoodType, intensity: int) -> MoodMusicProfile:
    """Scaled profile for a mood, as exposed right after a mood is logged."""
    return scale(mood_profiles.lookup(mood), intensity)


def merge_genres(
    user_genres: Optional[Iterable[str]],
    profile_genres: Iterable[str],
) -> list[str]:
    """User genres first, then the profile's; deduplicated, at most 5."""
    merged: list[str] = []
    for genre in [*(user_genres or []), *profile_genres]:
        if genre not in merged:
            merged.append(genre)
    return merged[:MAX_SEED_GENRES]


def build_params(
    mood: MoodType,
    intensity: int,
    user_genres: Optional[list[str]] = None,
    limit: int = DEFAULT_LIMIT,
    market: str = DEFAULT_MARKET,
) -> RecommendationParams:
    profile = music_profile(mood, intensity)
    genres = merge_genres(user_genres, profile.genres)

    return RecommendationParams(
        seed_genres=",".join(genres),
        target_energy=profile.energy,
        target_valence=profile.valence,
        target_danceability=profile.danceability,
        target_acousticness=profile.acousticness,
        min_tempo=profile.tempo.min,
        max_tempo=profile.tempo.max,
        limit=limit,
        market=market,
    )


def build_search_query(mood: MoodType, intensity: int) -> str:
    """Free-text query: first two keywords OR first two genres.

    Keywords and genres are not affected by intensity, so the base profile
    is used directly.
    """
    profile = mood_profiles.lookup(mood)
    terms = [*profile.keywords[:2], *profile.genres[:2]]
    return " OR ".join(terms)


def playlist_name(mood: MoodType, intensity: int, today: Optional[date] = None) -> str:
    today = today or date.today()
    label = mood_profiles.INTENSITY_LABELS[_intensity(intensity)]
    return f"{mood_profiles.display_name(mood)} - {label} ({today.day}/{today.month}/{today.year})"


def playlist_description(mood: MoodType) -> str:
    profile = mood_profiles.lookup(mood)
    genres = ", ".join(profile.genres[:3])
    return (
        "Playlist generada automáticamente por Moodify para cuando te sientes "
        f"{mood_profiles.display_name(mood).lower()}. Géneros: {genres}. "
        "¡Que la disfrutes! 🎵"
    )
