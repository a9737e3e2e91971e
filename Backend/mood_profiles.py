"""Mood → Spotify audio-feature templates.

Every ``MoodType`` maps to exactly one ``MoodMusicProfile``.  The table is
checked for completeness when this module is imported, so ``lookup`` never
needs a fallback.

Audio features:
- valence: musical positivity (0.0 = sad/angry, 1.0 = happy/cheerful)
- energy: intensity and activity (0.0 = calm, 1.0 = energetic)
- danceability: how suitable for dancing
- acousticness: confidence the track is acoustic
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from models import MoodIntensity, MoodMusicProfile, MoodType, TempoRange


def _profile(genres, energy, valence, danceability, acousticness, tempo, keywords) -> MoodMusicProfile:
    return MoodMusicProfile(
        genres=tuple(genres),
        energy=energy,
        valence=valence,
        danceability=danceability,
        acousticness=acousticness,
        tempo=TempoRange(*tempo),
        keywords=tuple(keywords),
    )


_PROFILES: dict[MoodType, MoodMusicProfile] = {
    MoodType.VERY_HAPPY: _profile(
        ["pop", "dance", "funk", "disco", "electronic"],
        0.8, 0.9, 0.8, 0.2, (120, 140),
        ["upbeat", "celebration", "party", "joy"],
    ),
    MoodType.HAPPY: _profile(
        ["pop", "indie-pop", "reggae", "funk", "soul"],
        0.7, 0.8, 0.6, 0.3, (100, 130),
        ["feel good", "positive", "uplifting", "cheerful"],
    ),
    MoodType.EXCITED: _profile(
        ["electronic", "rock", "pop-punk", "dance", "hip-hop"],
        0.9, 0.8, 0.7, 0.1, (130, 160),
        ["energetic", "pumped", "adrenaline", "hype"],
    ),
    MoodType.MOTIVATED: _profile(
        ["hip-hop", "rock", "electronic", "pop", "workout"],
        0.8, 0.7, 0.6, 0.2, (120, 150),
        ["motivational", "power", "strength", "focus"],
    ),
    MoodType.ENERGETIC: _profile(
        ["electronic", "dance", "pop", "rock", "punk"],
        0.9, 0.7, 0.8, 0.1, (125, 145),
        ["high energy", "dynamic", "powerful", "intense"],
    ),
    MoodType.CALM: _profile(
        ["ambient", "chillout", "acoustic", "indie-folk", "new-age"],
        0.3, 0.6, 0.3, 0.7, (60, 90),
        ["peaceful", "serene", "meditation", "tranquil"],
    ),
    MoodType.RELAXED: _profile(
        ["chillout", "lounge", "jazz", "bossa-nova", "indie"],
        0.4, 0.6, 0.4, 0.6, (70, 100),
        ["chill", "laid back", "smooth", "mellow"],
    ),
    MoodType.ROMANTIC: _profile(
        ["r&b", "soul", "jazz", "acoustic", "indie"],
        0.4, 0.7, 0.5, 0.5, (70, 110),
        ["love", "romantic", "intimate", "sensual"],
    ),
    MoodType.NOSTALGIC: _profile(
        ["oldies", "classic-rock", "vintage", "retro", "80s"],
        0.5, 0.6, 0.4, 0.4, (80, 120),
        ["memories", "throwback", "classic", "vintage"],
    ),
    MoodType.SAD: _profile(
        ["indie", "alternative", "singer-songwriter", "blues", "acoustic"],
        0.3, 0.3, 0.3, 0.6, (60, 90),
        ["melancholy", "emotional", "heartbreak", "introspective"],
    ),
    MoodType.VERY_SAD: _profile(
        ["sad", "blues", "acoustic", "indie", "alternative"],
        0.2, 0.2, 0.2, 0.8, (50, 80),
        ["depression", "sorrow", "tears", "grief"],
    ),
    MoodType.ANGRY: _profile(
        ["metal", "punk", "hard-rock", "rap", "hardcore"],
        0.9, 0.3, 0.5, 0.1, (140, 180),
        ["anger", "rage", "aggressive", "intense"],
    ),
    MoodType.STRESSED: _profile(
        ["ambient", "classical", "meditation", "new-age", "acoustic"],
        0.2, 0.4, 0.2, 0.8, (60, 80),
        ["stress relief", "calming", "anxiety", "peace"],
    ),
    MoodType.ANXIOUS: _profile(
        ["ambient", "chillout", "acoustic", "indie", "lo-fi"],
        0.3, 0.4, 0.3, 0.7, (70, 90),
        ["anxiety relief", "soothing", "comfort", "gentle"],
    ),
    MoodType.TIRED: _profile(
        ["lo-fi", "chillout", "ambient", "acoustic", "jazz"],
        0.2, 0.5, 0.2, 0.6, (60, 85),
        ["sleepy", "drowsy", "rest", "gentle"],
    ),
    MoodType.NEUTRAL: _profile(
        ["pop", "indie", "alternative", "rock", "electronic"],
        0.5, 0.5, 0.5, 0.4, (90, 120),
        ["balanced", "moderate", "everyday", "casual"],
    ),
}

_DISPLAY_NAMES: dict[MoodType, str] = {
    MoodType.VERY_HAPPY: "Súper Feliz 😊",
    MoodType.HAPPY: "Feliz 😃",
    MoodType.EXCITED: "Emocionado 🤩",
    MoodType.MOTIVATED: "Motivado 💪",
    MoodType.ENERGETIC: "Con Energía ⚡",
    MoodType.CALM: "Tranquilo 😌",
    MoodType.RELAXED: "Relajado 😎",
    MoodType.ROMANTIC: "Romántico 💕",
    MoodType.NOSTALGIC: "Nostálgico 🌅",
    MoodType.SAD: "Triste 😢",
    MoodType.VERY_SAD: "Muy Triste 😞",
    MoodType.ANGRY: "Enojado 😠",
    MoodType.STRESSED: "Estresado 😰",
    MoodType.ANXIOUS: "Ansioso 😟",
    MoodType.TIRED: "Cansado 😴",
    MoodType.NEUTRAL: "Neutral 😐",
}

INTENSITY_LABELS: dict[MoodIntensity, str] = {
    MoodIntensity.LOW: "Suave",
    MoodIntensity.MODERATE: "Moderado",
    MoodIntensity.HIGH: "Intenso",
    MoodIntensity.EXTREME: "Extremo",
}


def _check_complete(table: Mapping, name: str) -> None:
    missing = [m.value for m in MoodType if m not in table]
    if missing:
        raise RuntimeError(f"{name} is missing entries for: {', '.join(missing)}")


def _check_ranges(table: Mapping[MoodType, MoodMusicProfile]) -> None:
    for mood, p in table.items():
        for attr in ("energy", "valence", "danceability", "acousticness"):
            value = getattr(p, attr)
            if not 0.0 <= value <= 1.0:
                raise RuntimeError(f"{mood.value}.{attr}={value} outside [0, 1]")
        if p.tempo.min >= p.tempo.max:
            raise RuntimeError(f"{mood.value} tempo range is empty: {p.tempo}")


_check_complete(_PROFILES, "mood profile table")
_check_ranges(_PROFILES)
_check_complete(_DISPLAY_NAMES, "mood display names")

MOOD_PROFILES: Mapping[MoodType, MoodMusicProfile] = MappingProxyType(_PROFILES)


def lookup(mood: MoodType) -> MoodMusicProfile:
    """Return the base music profile for *mood*."""
    return MOOD_PROFILES[MoodType(mood)]


def display_name(mood: MoodType) -> str:
    """Spanish display label (with emoji) for a mood."""
    return _DISPLAY_NAMES[MoodType(mood)]
