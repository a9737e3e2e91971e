"""Data classes shared across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional


class MoodType(str, Enum):
    VERY_HAPPY = "very_happy"
    HAPPY = "happy"
    EXCITED = "excited"
    MOTIVATED = "motivated"
    ENERGETIC = "energetic"
    CALM = "calm"
    RELAXED = "relaxed"
    ROMANTIC = "romantic"
    NOSTALGIC = "nostalgic"
    SAD = "sad"
    VERY_SAD = "very_sad"
    ANGRY = "angry"
    STRESSED = "stressed"
    ANXIOUS = "anxious"
    TIRED = "tired"
    NEUTRAL = "neutral"


class MoodIntensity(IntEnum):
    LOW = 1
    MODERATE = 2
    HIGH = 3
    EXTREME = 4


# ---------------------------------------------------------------------------
# Music profiles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TempoRange:
    min: int
    max: int


@dataclass(frozen=True)
class MoodMusicProfile:
    """Musical feature template for a mood (also used for scaled profiles)."""

    genres: tuple[str, ...]
    energy: float
    valence: float
    danceability: float
    acousticness: float
    tempo: TempoRange
    keywords: tuple[str, ...]


@dataclass
class RecommendationParams:
    """Query parameters for Spotify's /recommendations endpoint."""

    seed_genres: str
    target_energy: float
    target_valence: float
    target_danceability: float
    target_acousticness: float
    min_tempo: int
    max_tempo: int
    limit: int = 20
    market: str = "US"


# ---------------------------------------------------------------------------
# Spotify objects
# ---------------------------------------------------------------------------

@dataclass
class Artist:
    name: str
    spotify_id: Optional[str] = None


@dataclass
class Album:
    name: str
    images: list[str] = field(default_factory=list)


@dataclass
class Track:
    """A Spotify track as returned by recommendations or search."""

    spotify_id: str
    name: str
    artists: list[Artist]
    album: Album
    duration_ms: int
    external_url: str
    popularity: int = 0
    explicit: bool = False
    preview_url: Optional[str] = None

    @property
    def uri(self) -> str:
        return f"spotify:track:{self.spotify_id}"


@dataclass
class Playlist:
    """Basic Spotify playlist metadata."""

    spotify_id: str
    name: str
    external_url: str
    track_count: int = 0
    description: Optional[str] = None
    owner: Optional[str] = None
    image_url: Optional[str] = None
    public: bool = False


@dataclass
class MoodPlaylist:
    """Result of assembling a playlist for a mood."""

    playlist: Playlist
    tracks: list[Track] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Record-store entities
# ---------------------------------------------------------------------------

@dataclass
class SpotifyCredential:
    access_token: str
    refresh_token: str
    token_expires: int  # unix timestamp


@dataclass
class User:
    """A user record together with its (secret) Spotify credential."""

    id: str
    spotify_id: str
    display_name: str = ""
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    is_premium: bool = False
    credential: Optional[SpotifyCredential] = None

    @property
    def is_connected(self) -> bool:
        return self.credential is not None


@dataclass
class Mood:
    """A logged mood entry."""

    id: str
    user_id: str
    mood_type: MoodType
    intensity: int
    created: datetime
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    weather: Optional[str] = None
    location: Optional[str] = None
    activity: Optional[str] = None
    social_context: Optional[str] = None
    preferred_genres: List[str] = field(default_factory=list)
    energy_level: int = 5
    valence: int = 5
    playlist_id: Optional[str] = None
    playlist_url: Optional[str] = None
    songs_generated: int = 0
    was_playlist_listened: bool = False
    playlist_rating: Optional[int] = None
    feedback: Optional[str] = None


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

@dataclass
class MoodCount:
    mood: MoodType
    count: int
    percentage: int
    display_name: str


@dataclass
class WeeklyTrendItem:
    date: str
    mood: MoodType
    intensity: float
    count: int
    display_name: str


@dataclass
class PlaylistStats:
    total_playlists_created: int = 0
    total_playlists_rated: int = 0
    average_rating: float = 0.0


@dataclass
class MoodAnalytics:
    """Summary of a user's mood history over a window of days."""

    total_moods: int
    most_common_mood: MoodCount
    mood_distribution: List[MoodCount] = field(default_factory=list)
    average_intensity: float = 0.0
    average_energy: float = 0.0
    average_valence: float = 0.0
    weekly_trend: List[WeeklyTrendItem] = field(default_factory=list)
    playlist_stats: PlaylistStats = field(default_factory=PlaylistStats)


@dataclass
class TopMood:
    mood: MoodType
    count: int
    percentage: int
    display_name: str
    avg_intensity: float
    avg_rating: float
    last_logged: datetime


@dataclass
class PeriodStats:
    period: str
    total_moods: int
    most_common_mood: str
    avg_intensity: float


@dataclass
class Page:
    """A page of mood records."""

    items: List[Mood]
    total: int
    page: int
    pages: int
