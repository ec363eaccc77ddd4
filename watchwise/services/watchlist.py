# watchwise/services/watchlist.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from watchwise.domain import EpisodeRecord, SeasonRecord, WatchRecord, WatchStatus
from watchwise.schemas import SeasonIn, WatchRecordIn, WatchRecordUpdate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def completion_date(status: WatchStatus, now: Optional[datetime] = None) -> Optional[datetime]:
    """completedDate to store alongside `status`: stamped when completed, cleared otherwise."""
    if status is WatchStatus.COMPLETED:
        return now or _utcnow()
    return None


def _season(s: SeasonIn, now: datetime) -> SeasonRecord:
    return SeasonRecord(
        season_number=s.season_number,
        status=s.status,
        completed_date=completion_date(s.status, now),
        episode_count=s.episode_count,
        duration=s.duration,
        episodes=[
            EpisodeRecord(episode_number=e.episode_number, rating=e.rating, duration=e.duration, name=e.name)
            for e in s.episodes
        ],
    )


def build_record(user_id: int, payload: WatchRecordIn, now: Optional[datetime] = None) -> WatchRecord:
    now = now or _utcnow()
    seasons = [_season(s, now) for s in payload.seasons]
    if payload.season_number is not None and not any(s.season_number == payload.season_number for s in seasons):
        seasons.append(_season(SeasonIn(season_number=payload.season_number, status=payload.status), now))

    return WatchRecord(
        id=None,
        user_id=user_id,
        title=payload.title,
        content_type=payload.content_type,
        status=payload.status,
        rating=payload.rating,
        genre=list(payload.genre),
        duration=payload.duration,
        completed_date=completion_date(payload.status, now),
        poster_path=payload.poster_path,
        tmdb_id=payload.tmdb_id,
        seasons=sorted(seasons, key=lambda s: s.season_number),
    )


def update_fields(payload: WatchRecordUpdate, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Store-level fields for a partial update. A status change always rewrites
    completed_date; an update without status leaves it alone.
    """
    # Explicit nulls mean "not provided"; genre never arrives as null (see schema).
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    status = fields.get("status")
    if status is not None:
        fields["completed_date"] = completion_date(status, now)
    return fields
