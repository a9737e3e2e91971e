"""Mood records backed by PocketBase.

**moods** (Base collection):

    user_id                (text)    – moodify_users record id
    mood_type              (text)    – MoodType value
    intensity              (number)  – 1..4
    description            (text)    – optional, ≤500 chars
    tags                   (json)    – ["...", ...]
    weather                (text)    – optional
    location               (text)    – optional
    activity               (text)    – optional
    social_context         (text)    – optional
    preferred_genres       (json)    – ["...", ...]
    energy_level           (number)  – 1..10
    valence                (number)  – 1..10
    playlist_id            (text)    – set after a playlist is generated
    playlist_url           (text)
    songs_generated        (number)
    was_playlist_listened  (bool)
    playlist_rating        (number)  – 1..5, 0 when unrated
    feedback               (text)
    created                (autodate)

    → Add an index on ``user_id``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from pocketbase.utils import ClientResponseError

import pocketbase_client
from models import Mood, MoodType, Page
from pocketbase_client import with_reauth

logger = logging.getLogger(__name__)

_COLLECTION = "moods"
_PB_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Characters that would end or escape a quoted filter literal.
_FILTER_UNSAFE = str.maketrans("", "", "\"'\\")


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _json_list(raw: Any) -> list[str]:
    if isinstance(raw, str):
        raw = json.loads(raw) if raw else []
    return list(raw or [])


def _parse_created(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        value = raw
    elif raw:
        value = datetime.fromisoformat(str(raw).replace("Z", "+00:00").replace(" ", "T"))
    else:
        value = datetime.now(timezone.utc)
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def format_pb_datetime(value: datetime) -> str:
    """UTC timestamp in PocketBase's filter format."""
    return value.astimezone(timezone.utc).strftime(_PB_DATE_FORMAT)


def _record_to_mood(rec: Any) -> Mood:
    """Reconstruct a Mood from a PocketBase record."""
    rating = getattr(rec, "playlist_rating", None)
    return Mood(
        id=rec.id,
        user_id=getattr(rec, "user_id", ""),
        mood_type=MoodType(getattr(rec, "mood_type", MoodType.NEUTRAL.value)),
        intensity=int(getattr(rec, "intensity", 1) or 1),
        created=_parse_created(getattr(rec, "created", None)),
        description=getattr(rec, "description", None) or None,
        tags=_json_list(getattr(rec, "tags", [])),
        weather=getattr(rec, "weather", None) or None,
        location=getattr(rec, "location", None) or None,
        activity=getattr(rec, "activity", None) or None,
        social_context=getattr(rec, "social_context", None) or None,
        preferred_genres=_json_list(getattr(rec, "preferred_genres", [])),
        energy_level=int(getattr(rec, "energy_level", 5) or 5),
        valence=int(getattr(rec, "valence", 5) or 5),
        playlist_id=getattr(rec, "playlist_id", None) or None,
        playlist_url=getattr(rec, "playlist_url", None) or None,
        songs_generated=int(getattr(rec, "songs_generated", 0) or 0),
        was_playlist_listened=bool(getattr(rec, "was_playlist_listened", False)),
        playlist_rating=int(rating) if rating else None,
        feedback=getattr(rec, "feedback", None) or None,
    )


def mood_to_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Convert mood fields to a PocketBase-ready dict (JSON lists encoded)."""
    payload = dict(data)
    for key in ("tags", "preferred_genres"):
        if key in payload:
            payload[key] = json.dumps(payload[key] or [], ensure_ascii=False)
    if isinstance(payload.get("mood_type"), MoodType):
        payload["mood_type"] = payload["mood_type"].value
    return payload


def build_filter(
    user_id: str,
    mood_type: Optional[MoodType] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    search: Optional[str] = None,
) -> str:
    parts = [f'user_id="{user_id}"']
    if mood_type:
        parts.append(f'mood_type="{MoodType(mood_type).value}"')
    if start:
        parts.append(f'created>="{format_pb_datetime(start)}"')
    if end:
        parts.append(f'created<="{format_pb_datetime(end)}"')
    if search:
        term = search.translate(_FILTER_UNSAFE).strip()
        parts.append(
            f'(description~"{term}" || tags~"{term}" || location~"{term}" || activity~"{term}")'
        )
    return " && ".join(parts)


# ---------------------------------------------------------------------------
# Low-level sync helpers (run inside asyncio.to_thread)
# ---------------------------------------------------------------------------

def _collection():
    return pocketbase_client.get_client().collection(_COLLECTION)


def _create_sync(payload: dict[str, Any]) -> Mood:
    record = with_reauth(_collection().create, payload)
    return _record_to_mood(record)


def _get_sync(user_id: str, mood_id: str) -> Optional[Mood]:
    try:
        record = with_reauth(_collection().get_one, mood_id)
    except ClientResponseError as exc:
        if exc.status == 404:
            return None
        raise
    mood = _record_to_mood(record)
    return mood if mood.user_id == user_id else None


def _list_sync(filter_expr: str, page: int, per_page: int) -> Page:
    result = with_reauth(
        _collection().get_list, page, per_page, {"filter": filter_expr, "sort": "-created"}
    )
    total = result.total_items
    return Page(
        items=[_record_to_mood(r) for r in result.items],
        total=total,
        page=page,
        pages=math.ceil(total / per_page) if per_page else 0,
    )


def _all_sync(filter_expr: str) -> list[Mood]:
    records = with_reauth(
        _collection().get_full_list, 200, {"filter": filter_expr, "sort": "-created"}
    )
    return [_record_to_mood(r) for r in records]


def _update_sync(user_id: str, mood_id: str, payload: dict[str, Any]) -> Optional[Mood]:
    if _get_sync(user_id, mood_id) is None:
        return None
    return _record_to_mood(with_reauth(_collection().update, mood_id, payload))


def _delete_sync(user_id: str, mood_id: str) -> bool:
    if _get_sync(user_id, mood_id) is None:
        return False
    with_reauth(_collection().delete, mood_id)
    return True


# ---------------------------------------------------------------------------
# Async public API
# ---------------------------------------------------------------------------

async def create(data: dict[str, Any]) -> Mood:
    return await asyncio.to_thread(_create_sync, mood_to_payload(data))


async def get(user_id: str, mood_id: str) -> Optional[Mood]:
    """Fetch a mood owned by *user_id*, or None."""
    return await asyncio.to_thread(_get_sync, user_id, mood_id)


async def list_page(filter_expr: str, page: int = 1, per_page: int = 10) -> Page:
    """Newest-first page of moods matching *filter_expr*."""
    return await asyncio.to_thread(_list_sync, filter_expr, page, per_page)


async def list_all(filter_expr: str) -> list[Mood]:
    return await asyncio.to_thread(_all_sync, filter_expr)


async def update(user_id: str, mood_id: str, data: dict[str, Any]) -> Optional[Mood]:
    return await asyncio.to_thread(_update_sync, user_id, mood_id, mood_to_payload(data))


async def delete(user_id: str, mood_id: str) -> bool:
    return await asyncio.to_thread(_delete_sync, user_id, mood_id)
