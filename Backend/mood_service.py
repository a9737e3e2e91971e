"""Mood records: validation, CRUD, playlist write-back and analytics.

``MoodService`` is built once with a store (``mood_store`` in production) and
shared by the request handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

import mood_analytics
import mood_store
import recommendation
from errors import ValidationError
from models import (
    Mood,
    MoodAnalytics,
    MoodIntensity,
    MoodMusicProfile,
    MoodPlaylist,
    MoodType,
    Page,
    PeriodStats,
    TopMood,
)

logger = logging.getLogger(__name__)

WEATHER = {"sunny", "cloudy", "rainy", "stormy", "snowy", "foggy", "windy"}
SOCIAL_CONTEXTS = {"alone", "with_friends", "with_family", "at_work", "in_public"}
MAX_DESCRIPTION = 500
MAX_TAG_LENGTH = 20


@dataclass
class MoodInput:
    """Fields accepted when logging (or updating) a mood."""

    mood_type: MoodType
    intensity: int
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    weather: Optional[str] = None
    location: Optional[str] = None
    activity: Optional[str] = None
    social_context: Optional[str] = None
    preferred_genres: List[str] = field(default_factory=list)
    energy_level: int = 5
    valence: int = 5


def validate(data: MoodInput) -> dict[str, Any]:
    """Check ranges and normalise fields; returns a store-ready dict."""
    try:
        mood_type = MoodType(data.mood_type)
    except ValueError as e:
        raise ValidationError(f"Unknown mood type '{data.mood_type}'") from e

    if not isinstance(data.intensity, int) or not MoodIntensity.LOW <= data.intensity <= MoodIntensity.EXTREME:
        raise ValidationError("Intensity must be an integer between 1 and 4")
    for name in ("energy_level", "valence"):
        value = getattr(data, name)
        if not isinstance(value, int) or not 1 <= value <= 10:
            raise ValidationError(f"{name} must be between 1 and 10")

    description = (data.description or "").strip() or None
    if description and len(description) > MAX_DESCRIPTION:
        raise ValidationError(f"Description cannot exceed {MAX_DESCRIPTION} characters")
    if data.weather and data.weather not in WEATHER:
        raise ValidationError(f"Unknown weather '{data.weather}'")
    if data.social_context and data.social_context not in SOCIAL_CONTEXTS:
        raise ValidationError(f"Unknown social context '{data.social_context}'")

    tags = [t.strip().lower()[:MAX_TAG_LENGTH] for t in data.tags or [] if t and t.strip()]

    return {
        "mood_type": mood_type,
        "intensity": int(data.intensity),
        "description": description,
        "tags": tags,
        "weather": data.weather,
        "location": data.location,
        "activity": data.activity,
        "social_context": data.social_context,
        "preferred_genres": list(data.preferred_genres or []),
        "energy_level": data.energy_level,
        "valence": data.valence,
    }


class MoodService:
    def __init__(self, store=mood_store, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._store = store
        self._clock = clock

    async def create(self, user_id: str, data: MoodInput) -> tuple[Mood, MoodMusicProfile]:
        """Log a mood and return it with its intensity-scaled music profile."""
        payload = validate(data)
        mood = await self._store.create(
            {
                "user_id": user_id,
                **payload,
                "songs_generated": 0,
                "was_playlist_listened": False,
            }
        )
        logger.info(f"Mood {mood.mood_type.value}/{mood.intensity} logged for {user_id}")
        return mood, recommendation.music_profile(mood.mood_type, mood.intensity)

    async def get(self, user_id: str, mood_id: str) -> Optional[Mood]:
        return await self._store.get(user_id, mood_id)

    async def list_moods(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        mood_type: Optional[MoodType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Page:
        return await self._store.list_page(
            mood_store.build_filter(user_id, mood_type, start, end), page, limit
        )

    async def search(self, user_id: str, term: str, page: int = 1, limit: int = 10) -> Page:
        """Case-insensitive match on description, tags, location and activity."""
        return await self._store.list_page(
            mood_store.build_filter(user_id, search=term), page, limit
        )

    async def update(self, user_id: str, mood_id: str, data: MoodInput) -> Optional[Mood]:
        return await self._store.update(user_id, mood_id, validate(data))

    async def delete(self, user_id: str, mood_id: str) -> bool:
        return await self._store.delete(user_id, mood_id)

    async def rate_playlist(
        self,
        user_id: str,
        mood_id: str,
        rating: int,
        feedback: Optional[str] = None,
    ) -> Optional[Mood]:
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        return await self._store.update(
            user_id,
            mood_id,
            {"playlist_rating": rating, "feedback": feedback or "", "was_playlist_listened": True},
        )

    async def mark_listened(self, user_id: str, mood_id: str) -> Optional[Mood]:
        return await self._store.update(user_id, mood_id, {"was_playlist_listened": True})

    async def record_playlist(self, mood: Mood, result: MoodPlaylist) -> Optional[Mood]:
        """Store the generated playlist's id, url and size on the mood."""
        return await self._store.update(
            mood.user_id,
            mood.id,
            {
                "playlist_id": result.playlist.spotify_id,
                "playlist_url": result.playlist.external_url,
                "songs_generated": len(result.tracks),
            },
        )

    # -- analytics --------------------------------------------------------

    async def analytics(self, user_id: str, days: int = 30) -> MoodAnalytics:
        now = self._clock()
        moods = await self._store.list_all(
            mood_store.build_filter(user_id, start=now - timedelta(days=days))
        )
        return mood_analytics.mood_analytics(moods, now, days)

    async def top_moods(self, user_id: str, limit: int = 5) -> list[TopMood]:
        moods = await self._store.list_all(mood_store.build_filter(user_id))
        return mood_analytics.top_moods(moods, limit)

    async def stats_by_period(self, user_id: str, period: str = "month") -> list[PeriodStats]:
        moods = await self._store.list_all(mood_store.build_filter(user_id))
        return mood_analytics.stats_by_period(moods, self._clock(), period)
