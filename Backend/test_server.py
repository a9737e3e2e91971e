"""HTTP-level tests for the FastAPI app.

Auth is bypassed by overriding ``current_user``; domain services are patched.

Run:
    pytest test_server.py
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

import server
from errors import EmptyResultError, ProviderRequestError, TokenRefreshError
from models import Mood, MoodPlaylist, MoodType, Playlist, SpotifyCredential, User


def make_user(connected: bool = True, premium: bool = False) -> User:
    return User(
        id="rec_1",
        spotify_id="alice",
        display_name="Alice",
        is_premium=premium,
        credential=SpotifyCredential("access", "refresh", 2_000_000_000) if connected else None,
    )


MOOD = Mood(
    id="m1",
    user_id="rec_1",
    mood_type=MoodType.CALM,
    intensity=2,
    created=datetime(2024, 6, 15, tzinfo=timezone.utc),
    preferred_genres=["lofi"],
)


@pytest.fixture
def client_for():
    def _make(user: User) -> TestClient:
        server.app.dependency_overrides[server.current_user] = lambda: user
        return TestClient(server.app)

    yield _make
    server.app.dependency_overrides.clear()


# ── Basics ────────────────────────────────────────────────────────────────

def test_root():
    resp = TestClient(server.app).get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_me_requires_token():
    assert TestClient(server.app).get("/auth/me").status_code == 401


def test_session_token_roundtrip_through_me():
    user = make_user()
    token = server.create_session_token(user)
    with patch.object(server.pocketbase_client, "get_user", AsyncMock(return_value=user)) as get_user:
        resp = TestClient(server.app).get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert resp.json()["spotify_connected"] is True
    get_user.assert_awaited_once_with("alice")


def test_callback_rejects_unknown_state():
    resp = TestClient(server.app).get("/auth/callback", params={"code": "c", "state": "forged"})
    assert resp.status_code == 400


# ── Error mapping ─────────────────────────────────────────────────────────

def test_not_connected_is_400(client_for):
    resp = client_for(make_user(connected=False)).get("/spotify/playlists")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Connect your Spotify account first"}


def test_playback_requires_premium(client_for):
    resp = client_for(make_user(premium=False)).post("/spotify/pause", json={})
    assert resp.status_code == 403
    assert resp.json()["success"] is False


def test_refresh_failure_is_401(client_for):
    with patch.object(server.tokens, "ensure_valid_token", AsyncMock(side_effect=TokenRefreshError())):
        resp = client_for(make_user()).get("/spotify/devices")
    assert resp.status_code == 401


def test_provider_failure_is_502(client_for):
    with patch.object(server.tokens, "ensure_valid_token", AsyncMock(return_value="tok")), \
            patch.object(server.spotify_client, "get_devices", AsyncMock(side_effect=ProviderRequestError("down", 500))):
        resp = client_for(make_user()).get("/spotify/devices")
    assert resp.status_code == 502
    assert resp.json()["message"] == "down"


# ── Mood playlist ─────────────────────────────────────────────────────────

def test_mood_playlist_created_and_recorded(client_for):
    result = MoodPlaylist(
        playlist=Playlist(spotify_id="pl1", name="Tranquilo", external_url="https://open.spotify.com/playlist/pl1", track_count=0),
        tracks=[],
    )
    with patch.object(server.moods, "get", AsyncMock(return_value=MOOD)), \
            patch.object(server.moods, "record_playlist", AsyncMock()) as record, \
            patch.object(server, "create_mood_playlist", AsyncMock(return_value=result)) as build:
        resp = client_for(make_user()).post("/moods/m1/playlist", json={"custom_name": "Evening"})

    assert resp.status_code == 201
    assert resp.json()["playlist"]["id"] == "pl1"
    args = build.await_args.args
    assert args[2:] == (MoodType.CALM, 2, ["lofi"], "Evening")
    record.assert_awaited_once()


def test_mood_playlist_empty_is_404(client_for):
    with patch.object(server.moods, "get", AsyncMock(return_value=MOOD)), \
            patch.object(server, "create_mood_playlist", AsyncMock(side_effect=EmptyResultError())):
        resp = client_for(make_user()).post("/moods/m1/playlist")

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "No tracks found for this mood"}


def test_unknown_mood_is_404(client_for):
    with patch.object(server.moods, "get", AsyncMock(return_value=None)):
        resp = client_for(make_user()).get("/moods/missing")
    assert resp.status_code == 404


def test_create_mood_rejects_bad_intensity(client_for):
    resp = client_for(make_user()).post("/moods", json={"mood_type": "happy", "intensity": 7})
    assert resp.status_code == 422


# ── Mood updates ──────────────────────────────────────────────────────────

def test_patch_null_list_and_number_fields_keep_stored_values(client_for):
    stored = Mood(
        id="m1",
        user_id="rec_1",
        mood_type=MoodType.CALM,
        intensity=2,
        created=datetime(2024, 6, 15, tzinfo=timezone.utc),
        description="quiet evening",
        tags=["home"],
        preferred_genres=["lofi"],
        energy_level=3,
    )
    update = AsyncMock(return_value=stored)
    with patch.object(server.moods, "get", AsyncMock(return_value=stored)), \
            patch.object(server.moods._store, "update", update):
        resp = client_for(make_user()).patch(
            "/moods/m1",
            json={"tags": None, "preferred_genres": None, "energy_level": None, "description": None},
        )

    assert resp.status_code == 200
    sent = update.await_args.args[2]
    assert sent["tags"] == ["home"]
    assert sent["preferred_genres"] == ["lofi"]
    assert sent["energy_level"] == 3
    assert sent["description"] is None


def test_patch_changes_only_given_fields(client_for):
    update = AsyncMock(return_value=MOOD)
    with patch.object(server.moods, "get", AsyncMock(return_value=MOOD)), \
            patch.object(server.moods._store, "update", update):
        resp = client_for(make_user()).patch("/moods/m1", json={"intensity": 4})

    assert resp.status_code == 200
    sent = update.await_args.args[2]
    assert sent["intensity"] == 4
    assert sent["mood_type"] == MoodType.CALM
