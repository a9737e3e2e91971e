"""Tests for mood history analytics.

Run:
    pytest test_mood_analytics.py
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

import mood_analytics
from models import Mood, MoodType

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def mood(i, mood_type, intensity, days_ago, energy=5, valence=5, playlist_id=None, rating=None) -> Mood:
    return Mood(
        id=f"m{i}",
        user_id="u1",
        mood_type=mood_type,
        intensity=intensity,
        created=NOW - timedelta(days=days_ago),
        energy_level=energy,
        valence=valence,
        playlist_id=playlist_id,
        playlist_rating=rating,
    )


@pytest.fixture
def history() -> list[Mood]:
    return [
        mood(1, MoodType.HAPPY, 3, 1, energy=7, valence=8, playlist_id="p1", rating=4),
        mood(2, MoodType.HAPPY, 2, 2, energy=6, valence=7, playlist_id="p2"),
        mood(3, MoodType.SAD, 1, 1, energy=3, valence=2),
        mood(4, MoodType.CALM, 4, 40),
    ]


# ── mood_analytics ────────────────────────────────────────────────────────

def test_analytics_window_and_averages(history):
    result = mood_analytics.mood_analytics(history, NOW, days=30)

    assert result.total_moods == 3
    assert result.most_common_mood.mood == MoodType.HAPPY
    assert result.most_common_mood.count == 2
    assert result.most_common_mood.percentage == 67
    assert result.most_common_mood.display_name == "Feliz 😃"
    assert [(c.mood, c.count, c.percentage) for c in result.mood_distribution] == [
        (MoodType.HAPPY, 2, 67),
        (MoodType.SAD, 1, 33),
    ]
    assert result.average_intensity == 2.0
    assert result.average_energy == 5.3
    assert result.average_valence == 5.7


def test_analytics_playlist_stats(history):
    stats = mood_analytics.mood_analytics(history, NOW).playlist_stats
    assert stats.total_playlists_created == 2
    assert stats.total_playlists_rated == 1
    assert stats.average_rating == 4.0


def test_analytics_empty_history():
    result = mood_analytics.mood_analytics([], NOW)
    assert result.total_moods == 0
    assert result.most_common_mood.mood == MoodType.NEUTRAL
    assert result.most_common_mood.count == 0
    assert result.mood_distribution == []
    assert result.weekly_trend == []
    assert result.playlist_stats.total_playlists_created == 0


def test_most_common_tie_goes_to_first_seen():
    moods = [mood(1, MoodType.SAD, 2, 1), mood(2, MoodType.HAPPY, 2, 2)]
    assert mood_analytics.mood_analytics(moods, NOW).most_common_mood.mood == MoodType.SAD


# ── weekly_trend ──────────────────────────────────────────────────────────

def test_weekly_trend_newest_day_first(history):
    trend = mood_analytics.weekly_trend(history, NOW)

    assert [t.date for t in trend] == ["2024-06-14", "2024-06-14", "2024-06-13"]
    assert {t.mood for t in trend[:2]} == {MoodType.HAPPY, MoodType.SAD}
    last = trend[-1]
    assert (last.mood, last.count, last.intensity) == (MoodType.HAPPY, 1, 2.0)


def test_weekly_trend_groups_same_day():
    moods = [mood(1, MoodType.CALM, 1, 0), mood(2, MoodType.CALM, 2, 0), mood(3, MoodType.SAD, 3, 0)]
    trend = mood_analytics.weekly_trend(moods, NOW)

    assert trend[0].mood == MoodType.CALM
    assert trend[0].count == 2
    assert trend[0].intensity == 1.5
    assert trend[1].mood == MoodType.SAD


# ── top_moods ─────────────────────────────────────────────────────────────

def test_top_moods(history):
    top = mood_analytics.top_moods(history, limit=2)

    assert [t.mood for t in top] == [MoodType.HAPPY, MoodType.SAD]
    happy = top[0]
    assert happy.count == 2
    assert happy.percentage == 50
    assert happy.avg_intensity == 2.5
    assert happy.avg_rating == 4.0
    assert happy.last_logged == NOW - timedelta(days=1)
    assert top[1].avg_rating == 0.0


def test_top_moods_empty():
    assert mood_analytics.top_moods([]) == []


# ── stats_by_period ───────────────────────────────────────────────────────

def test_stats_by_month(history):
    stats = mood_analytics.stats_by_period(history, NOW, "month")

    assert [s.period for s in stats] == ["2024-06", "2024-05"]
    june, may = stats
    assert (june.total_moods, june.most_common_mood, june.avg_intensity) == (3, "Feliz 😃", 2.0)
    assert (may.total_moods, may.most_common_mood, may.avg_intensity) == (1, "Tranquilo 😌", 4.0)


def test_stats_by_year(history):
    stats = mood_analytics.stats_by_period(history, NOW, "year")
    assert [(s.period, s.total_moods) for s in stats] == [("2024", 4)]


def test_stats_by_week_excludes_older_entries(history):
    moods = history + [mood(5, MoodType.TIRED, 2, 50)]
    stats = mood_analytics.stats_by_period(moods, NOW, "week")
    assert sum(s.total_moods for s in stats) == 4
    assert all(s.most_common_mood != "Cansado 😴" for s in stats)


def test_stats_unknown_period(history):
    with pytest.raises(ValueError):
        mood_analytics.stats_by_period(history, NOW, "decade")
