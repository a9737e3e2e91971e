"""Mood history analytics.

All functions are pure: they take the mood records already fetched from the
store plus a reference ``now`` and return dataclasses from ``models``.

Public API
----------
mood_analytics(moods, now, days=30)        → MoodAnalytics
weekly_trend(moods, now, days=7)           → list[WeeklyTrendItem]
top_moods(moods, limit=5)                  → list[TopMood]
stats_by_period(moods, now, period)        → list[PeriodStats]
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import List

import numpy as np
import pandas as pd

import mood_profiles
from models import (
    Mood,
    MoodAnalytics,
    MoodCount,
    MoodType,
    PeriodStats,
    PlaylistStats,
    TopMood,
    WeeklyTrendItem,
)

logger = logging.getLogger(__name__)

_COLUMNS = [
    "mood_type",
    "intensity",
    "energy_level",
    "valence",
    "created",
    "has_playlist",
    "playlist_rating",
]

_PERIOD_FORMATS = {
    "week": "%Y-W%U",
    "month": "%Y-%m",
    "year": "%Y",
}


def _round1(x: float) -> float:
    """Round half up to one decimal."""
    if x is None or (isinstance(x, float) and math.isnan(x)):
        return 0.0
    return math.floor(x * 10 + 0.5) / 10


def _percent(count: int, total: int) -> int:
    return int(math.floor(count / total * 100 + 0.5)) if total else 0


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def moods_to_frame(moods: List[Mood]) -> pd.DataFrame:
    """One row per mood, in the order given."""
    rows = [
        {
            "mood_type": MoodType(m.mood_type).value,
            "intensity": m.intensity,
            "energy_level": m.energy_level,
            "valence": m.valence,
            "created": _utc(m.created),
            "has_playlist": bool(m.playlist_id),
            "playlist_rating": float(m.playlist_rating) if m.playlist_rating else np.nan,
        }
        for m in moods
    ]
    df = pd.DataFrame(rows, columns=_COLUMNS)
    df["created"] = pd.to_datetime(df["created"], utc=True)
    return df


def _since(df: pd.DataFrame, start: datetime) -> pd.DataFrame:
    return df[df["created"] >= pd.Timestamp(_utc(start))]


def _mood_count(mood: str, count: int, total: int) -> MoodCount:
    return MoodCount(
        mood=MoodType(mood),
        count=int(count),
        percentage=_percent(int(count), total),
        display_name=mood_profiles.display_name(MoodType(mood)),
    )


def _empty_analytics() -> MoodAnalytics:
    return MoodAnalytics(
        total_moods=0,
        most_common_mood=_mood_count(MoodType.NEUTRAL.value, 0, 0),
    )


def weekly_trend(moods: List[Mood], now: datetime, days: int = 7) -> List[WeeklyTrendItem]:
    """Per-day, per-mood counts and average intensity, newest day first."""
    df = _since(moods_to_frame(moods), _utc(now) - timedelta(days=days))
    if df.empty:
        return []

    df = df.assign(date=df["created"].dt.strftime("%Y-%m-%d"))
    grouped = (
        df.groupby(["date", "mood_type"], sort=False)
        .agg(n=("intensity", "size"), intensity=("intensity", "mean"))
        .reset_index()
        .sort_values(["date", "n"], ascending=[False, False], kind="stable")
    )
    return [
        WeeklyTrendItem(
            date=row.date,
            mood=MoodType(row.mood_type),
            intensity=_round1(row.intensity),
            count=int(row.n),
            display_name=mood_profiles.display_name(MoodType(row.mood_type)),
        )
        for row in grouped.itertuples(index=False)
    ]


def mood_analytics(moods: List[Mood], now: datetime, days: int = 30) -> MoodAnalytics:
    """Summary of the moods logged in the last *days* days."""
    df = _since(moods_to_frame(moods), _utc(now) - timedelta(days=days))
    if df.empty:
        return _empty_analytics()

    total = len(df)
    # First-seen order breaks ties for the most common mood.
    counts = df.groupby("mood_type", sort=False).size()
    most_common = counts.idxmax()

    distribution = counts.sort_values(ascending=False, kind="stable")
    rated = df["playlist_rating"].dropna()

    return MoodAnalytics(
        total_moods=total,
        most_common_mood=_mood_count(most_common, counts[most_common], total),
        mood_distribution=[_mood_count(m, c, total) for m, c in distribution.items()],
        average_intensity=_round1(df["intensity"].mean()),
        average_energy=_round1(df["energy_level"].mean()),
        average_valence=_round1(df["valence"].mean()),
        weekly_trend=weekly_trend(moods, now, 7),
        playlist_stats=PlaylistStats(
            total_playlists_created=int(df["has_playlist"].sum()),
            total_playlists_rated=len(rated),
            average_rating=_round1(rated.mean()) if len(rated) else 0.0,
        ),
    )


def top_moods(moods: List[Mood], limit: int = 5) -> List[TopMood]:
    """Most frequently logged moods over the whole history."""
    df = moods_to_frame(moods)
    if df.empty:
        return []

    total = len(df)
    grouped = (
        df.groupby("mood_type", sort=False)
        .agg(
            count=("intensity", "size"),
            avg_intensity=("intensity", "mean"),
            avg_rating=("playlist_rating", "mean"),
            last_logged=("created", "max"),
        )
        .sort_values("count", ascending=False, kind="stable")
        .head(limit)
    )
    return [
        TopMood(
            mood=MoodType(mood),
            count=int(row["count"]),
            percentage=_percent(int(row["count"]), total),
            display_name=mood_profiles.display_name(MoodType(mood)),
            avg_intensity=_round1(row["avg_intensity"]),
            avg_rating=_round1(row["avg_rating"]),
            last_logged=row["last_logged"].to_pydatetime(),
        )
        for mood, row in grouped.iterrows()
    ]


def _period_start(now: datetime, period: str) -> datetime:
    now = _utc(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return midnight - timedelta(weeks=6)
    if period == "month":
        month_index = now.year * 12 + now.month - 1 - 11
        return midnight.replace(year=month_index // 12, month=month_index % 12 + 1, day=1)
    return midnight.replace(year=now.year - 4, month=1, day=1)


def stats_by_period(moods: List[Mood], now: datetime, period: str = "month") -> List[PeriodStats]:
    """Totals per week (6 weeks), month (12 months) or year (5 years), newest first."""
    if period not in _PERIOD_FORMATS:
        raise ValueError(f"Unknown period '{period}', expected one of {sorted(_PERIOD_FORMATS)}")

    df = _since(moods_to_frame(moods), _period_start(now, period))
    if df.empty:
        return []

    df = df.assign(period=df["created"].dt.strftime(_PERIOD_FORMATS[period]))
    results: List[PeriodStats] = []
    for key, group in sorted(df.groupby("period"), key=lambda kv: kv[0], reverse=True):
        counts = group.groupby("mood_type", sort=False).size()
        results.append(
            PeriodStats(
                period=key,
                total_moods=len(group),
                most_common_mood=mood_profiles.display_name(MoodType(counts.idxmax())),
                avg_intensity=_round1(group["intensity"].mean()),
            )
        )
    return results
