"""Tests for tiered track retrieval (recommendations → genre search).

Run:
    pytest test_track_retrieval.py
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

import spotify_client
import track_retrieval
from errors import ProviderRequestError
from models import Album, Artist, MoodType, Track


def make_track(i: int) -> Track:
    return Track(
        spotify_id=f"t{i}",
        name=f"Track {i}",
        artists=[Artist(name="Artist")],
        album=Album(name="Album"),
        duration_ms=180_000,
        external_url=f"https://open.spotify.com/track/t{i}",
    )


# ── Tier 1 ────────────────────────────────────────────────────────────────

def test_recommendations_used_when_available():
    tracks = [make_track(i) for i in range(3)]
    with patch.object(spotify_client, "get_recommendations", AsyncMock(return_value=tracks)) as recs, \
            patch.object(spotify_client, "search_tracks", AsyncMock()) as search:
        result = asyncio.run(track_retrieval.get_tracks("tok", MoodType.HAPPY, 3))

    assert result == tracks
    recs.assert_awaited_once()
    params = recs.await_args.args[1]
    assert params.seed_genres == "pop,indie-pop,reggae,funk,soul"
    assert params.limit == 20
    search.assert_not_called()


def test_provider_order_preserved():
    tracks = [make_track(i) for i in (5, 1, 3)]
    with patch.object(spotify_client, "get_recommendations", AsyncMock(return_value=tracks)), \
            patch.object(spotify_client, "search_tracks", AsyncMock()):
        result = asyncio.run(track_retrieval.get_tracks("tok", MoodType.CALM, 2))
    assert [t.spotify_id for t in result] == ["t5", "t1", "t3"]


# ── Fallback ──────────────────────────────────────────────────────────────

def test_failure_falls_back_to_single_genre_search():
    fallback = [make_track(9)]
    failing = AsyncMock(side_effect=ProviderRequestError("gone", status=404))
    with patch.object(spotify_client, "get_recommendations", failing), \
            patch.object(spotify_client, "search_tracks", AsyncMock(return_value=fallback)) as search:
        result = asyncio.run(track_retrieval.get_tracks("tok", MoodType.CALM, 2))

    assert result == fallback
    search.assert_awaited_once()
    assert search.await_args.args[1] == 'genre:"ambient"'


def test_fallback_prefers_first_user_genre():
    failing = AsyncMock(side_effect=ProviderRequestError("boom", status=500))
    with patch.object(spotify_client, "get_recommendations", failing), \
            patch.object(spotify_client, "search_tracks", AsyncMock(return_value=[])) as search:
        asyncio.run(track_retrieval.get_tracks("tok", MoodType.CALM, 2, ["lofi", "jazz"]))

    assert search.await_args.args[1] == 'genre:"lofi"'


def test_empty_recommendations_fall_back():
    fallback = [make_track(1), make_track(2)]
    with patch.object(spotify_client, "get_recommendations", AsyncMock(return_value=[])), \
            patch.object(spotify_client, "search_tracks", AsyncMock(return_value=fallback)) as search:
        result = asyncio.run(track_retrieval.get_tracks("tok", MoodType.SAD, 1))

    assert result == fallback
    search.assert_awaited_once()


def test_empty_fallback_is_a_valid_result():
    failing = AsyncMock(side_effect=ProviderRequestError("boom"))
    with patch.object(spotify_client, "get_recommendations", failing), \
            patch.object(spotify_client, "search_tracks", AsyncMock(return_value=[])) as search:
        result = asyncio.run(track_retrieval.get_tracks("tok", MoodType.ANGRY, 4))

    assert result == []
    search.assert_awaited_once()


def test_fallback_failure_propagates():
    failing = AsyncMock(side_effect=ProviderRequestError("boom"))
    search_failing = AsyncMock(side_effect=ProviderRequestError("search down", status=503))
    with patch.object(spotify_client, "get_recommendations", failing), \
            patch.object(spotify_client, "search_tracks", search_failing):
        with pytest.raises(ProviderRequestError) as exc_info:
            asyncio.run(track_retrieval.get_tracks("tok", MoodType.ANGRY, 4))

    assert exc_info.value.status == 503
    search_failing.assert_awaited_once()


def test_timeout_on_recommendations_falls_back():
    class TimingOutSession:
        def __call__(self):
            return self

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        def request(self, *args, **kwargs):
            raise asyncio.TimeoutError()

    fallback = [make_track(7)]
    with patch.object(spotify_client, "ClientSession", TimingOutSession()), \
            patch.object(spotify_client, "search_tracks", AsyncMock(return_value=fallback)) as search:
        result = asyncio.run(track_retrieval.get_tracks("tok", MoodType.CALM, 2))

    assert result == fallback
    search.assert_awaited_once()


# ── Text search ───────────────────────────────────────────────────────────

def test_search_by_mood_text_is_single_tier():
    search = AsyncMock(return_value=[])
    with patch.object(spotify_client, "get_recommendations", AsyncMock()) as recs, \
            patch.object(spotify_client, "search_tracks", search):
        result = asyncio.run(track_retrieval.search_by_mood_text("tok", MoodType.CALM, 2, limit=10))

    assert result == []
    recs.assert_not_called()
    search.assert_awaited_once()
    assert search.await_args.args[1] == "genre:ambient peaceful"
    assert search.await_args.kwargs["limit"] == 10
