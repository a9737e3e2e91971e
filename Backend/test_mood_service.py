"""Tests for mood validation and the mood service.

The PocketBase-backed store is replaced with an in-memory fake.

Run:
    pytest test_mood_service.py
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

import mood_service
from errors import ValidationError
from models import Album, Artist, Mood, MoodPlaylist, MoodType, Playlist, Track
from mood_service import MoodInput, MoodService

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeMoodStore:
    def __init__(self):
        self.moods: dict[str, Mood] = {}
        self.updates: list[dict] = []

    async def create(self, data):
        mood = Mood(id=f"m{len(self.moods) + 1}", created=NOW, **data)
        self.moods[mood.id] = mood
        return mood

    async def get(self, user_id, mood_id):
        mood = self.moods.get(mood_id)
        return mood if mood and mood.user_id == user_id else None

    async def update(self, user_id, mood_id, data):
        mood = await self.get(user_id, mood_id)
        if mood is None:
            return None
        self.updates.append(data)
        for key, value in data.items():
            setattr(mood, key, value)
        return mood

    async def delete(self, user_id, mood_id):
        return self.moods.pop(mood_id, None) is not None

    async def list_page(self, filter_expr, page=1, per_page=10):
        raise NotImplementedError

    async def list_all(self, filter_expr):
        return list(self.moods.values())


def make_service(store=None) -> MoodService:
    return MoodService(store=store or FakeMoodStore(), clock=lambda: NOW)


# ── validate ──────────────────────────────────────────────────────────────

def test_validate_normalises_tags_and_description():
    data = mood_service.validate(
        MoodInput(
            mood_type="happy",
            intensity=2,
            description="  sunny walk  ",
            tags=["  Work ", "", "A" * 30],
        )
    )
    assert data["mood_type"] == MoodType.HAPPY
    assert data["description"] == "sunny walk"
    assert data["tags"] == ["work", "a" * 20]


@pytest.mark.parametrize(
    "overrides",
    [
        {"mood_type": "ecstatic"},
        {"intensity": 0},
        {"intensity": 5},
        {"energy_level": 11},
        {"valence": 0},
        {"description": "x" * 501},
        {"weather": "hail"},
        {"social_context": "at_the_moon"},
    ],
)
def test_validate_rejects_out_of_range(overrides):
    fields = {"mood_type": MoodType.CALM, "intensity": 2, **overrides}
    with pytest.raises(ValidationError):
        mood_service.validate(MoodInput(**fields))


# ── create / rate / write-back ────────────────────────────────────────────

def test_create_returns_scaled_profile():
    service = make_service()
    mood, profile = asyncio.run(
        service.create("u1", MoodInput(mood_type=MoodType.HAPPY, intensity=4, weather="sunny"))
    )
    assert mood.user_id == "u1"
    assert mood.songs_generated == 0
    assert mood.was_playlist_listened is False
    assert profile.energy == 1.0
    assert profile.valence == 0.8


def test_rate_playlist_marks_listened():
    store = FakeMoodStore()
    service = make_service(store)
    mood, _ = asyncio.run(service.create("u1", MoodInput(mood_type=MoodType.SAD, intensity=1)))

    rated = asyncio.run(service.rate_playlist("u1", mood.id, 5, "great"))

    assert rated.playlist_rating == 5
    assert rated.feedback == "great"
    assert rated.was_playlist_listened is True


@pytest.mark.parametrize("rating", [0, 6])
def test_rate_playlist_out_of_range(rating):
    store = FakeMoodStore()
    store.update = AsyncMock()
    with pytest.raises(ValidationError):
        asyncio.run(make_service(store).rate_playlist("u1", "m1", rating))
    store.update.assert_not_called()


def test_rate_playlist_other_users_mood():
    store = FakeMoodStore()
    service = make_service(store)
    mood, _ = asyncio.run(service.create("u1", MoodInput(mood_type=MoodType.SAD, intensity=1)))
    assert asyncio.run(service.rate_playlist("u2", mood.id, 3)) is None


def test_record_playlist():
    store = FakeMoodStore()
    service = make_service(store)
    mood, _ = asyncio.run(service.create("u1", MoodInput(mood_type=MoodType.CALM, intensity=2)))
    tracks = [
        Track(spotify_id=f"t{i}", name="t", artists=[Artist("a")], album=Album("b"), duration_ms=1, external_url="")
        for i in range(3)
    ]
    result = MoodPlaylist(
        playlist=Playlist(spotify_id="pl9", name="n", external_url="https://open.spotify.com/playlist/pl9"),
        tracks=tracks,
    )

    updated = asyncio.run(service.record_playlist(mood, result))

    assert updated.playlist_id == "pl9"
    assert updated.playlist_url == "https://open.spotify.com/playlist/pl9"
    assert updated.songs_generated == 3


def test_analytics_uses_store_history():
    service = make_service()
    asyncio.run(service.create("u1", MoodInput(mood_type=MoodType.CALM, intensity=2)))
    asyncio.run(service.create("u1", MoodInput(mood_type=MoodType.CALM, intensity=4)))

    result = asyncio.run(service.analytics("u1", days=30))

    assert result.total_moods == 2
    assert result.most_common_mood.mood == MoodType.CALM
    assert result.average_intensity == 3.0


def test_validate_tolerates_missing_lists():
    data = mood_service.validate(
        MoodInput(mood_type=MoodType.CALM, intensity=2, tags=None, preferred_genres=None)
    )
    assert data["tags"] == []
    assert data["preferred_genres"] == []


def test_validate_rejects_missing_energy():
    with pytest.raises(ValidationError):
        mood_service.validate(MoodInput(mood_type=MoodType.CALM, intensity=2, energy_level=None))
