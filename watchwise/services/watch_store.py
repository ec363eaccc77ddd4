# watchwise/services/watch_store.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from fastapi import Depends
from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from watchwise.database import get_async_db
from watchwise.db_models import EpisodeRow, SeasonRow, WatchRecordRow
from watchwise.domain import (
    ContentType,
    EpisodeRecord,
    SeasonRecord,
    WatchRecord,
    WatchStatus,
)

# Fields update_record() is allowed to touch. content_type / tmdb_id are fixed at creation.
UPDATABLE_FIELDS = ("title", "genre", "duration", "status", "rating", "favorite", "completed_date")


class DuplicateRecordError(Exception):
    """(user, tmdb_id, content_type) already tracked."""


class WatchRecordStore(Protocol):
    async def completed_movies(self, user_id: int, since: Optional[datetime] = None) -> List[WatchRecord]: ...

    async def tv_shows(self, user_id: int) -> List[WatchRecord]: ...

    async def list_records(self, user_id: int) -> List[WatchRecord]: ...

    async def get_record(self, user_id: int, record_id: int) -> Optional[WatchRecord]: ...

    async def find_by_tmdb(
        self, user_id: int, content_type: ContentType, tmdb_id: str
    ) -> Optional[WatchRecord]: ...

    async def add_record(self, record: WatchRecord) -> WatchRecord: ...

    async def update_record(
        self, user_id: int, record_id: int, fields: Dict[str, Any]
    ) -> Optional[WatchRecord]: ...

    async def toggle_favorite(self, user_id: int, record_id: int) -> Optional[WatchRecord]: ...

    async def set_season_status(
        self,
        user_id: int,
        record_id: int,
        season_number: int,
        status: WatchStatus,
        completed_date: Optional[datetime],
    ) -> Optional[WatchRecord]: ...

    async def delete_record(self, user_id: int, record_id: int) -> bool: ...

    async def clear_records(self, user_id: int) -> int: ...


# ──────────────────────────────────────────────────────────────────────
# Row <-> value object
# ──────────────────────────────────────────────────────────────────────

def _to_season(s: SeasonRow) -> SeasonRecord:
    return SeasonRecord(
        season_number=s.season_number,
        status=WatchStatus(s.status),
        completed_date=s.completed_date,
        episode_count=s.episode_count or 0,
        duration=s.duration or 0,
        episodes=[
            EpisodeRecord(
                episode_number=e.episode_number,
                rating=e.rating,
                duration=e.duration or 0,
                name=e.name or "",
            )
            for e in s.episodes
        ],
    )


def to_record(row: WatchRecordRow) -> WatchRecord:
    return WatchRecord(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        content_type=ContentType(row.content_type),
        status=WatchStatus(row.status),
        rating=row.rating or 0,
        genre=list(row.genre or []),
        duration=row.duration or 0,
        completed_date=row.completed_date,
        poster_path=row.poster_path,
        tmdb_id=row.tmdb_id,
        favorite=bool(row.favorite),
        seasons=[_to_season(s) for s in row.seasons],
        created_at=row.created_at,
    )


def to_season_row(s: SeasonRecord) -> SeasonRow:
    return SeasonRow(
        season_number=s.season_number,
        status=s.status.value,
        completed_date=s.completed_date,
        episode_count=s.episode_count,
        duration=s.duration,
        episodes=[
            EpisodeRow(episode_number=e.episode_number, name=e.name, duration=e.duration, rating=e.rating)
            for e in s.episodes
        ],
    )


def to_row(record: WatchRecord) -> WatchRecordRow:
    return WatchRecordRow(
        user_id=record.user_id,
        title=record.title,
        content_type=record.content_type.value,
        status=record.status.value,
        rating=record.rating,
        genre=list(record.genre),
        duration=record.duration,
        favorite=record.favorite,
        completed_date=record.completed_date,
        poster_path=record.poster_path,
        tmdb_id=record.tmdb_id,
        seasons=[to_season_row(s) for s in record.seasons],
    )


# ──────────────────────────────────────────────────────────────────────
# Stats queries
# ──────────────────────────────────────────────────────────────────────

def completed_movies_query(user_id: int, since: Optional[datetime] = None) -> Select:
    """Completed movies for the user, oldest id first; `since` is an inclusive lower bound."""
    q = select(WatchRecordRow).where(
        WatchRecordRow.user_id == user_id,
        WatchRecordRow.content_type == ContentType.MOVIE.value,
        WatchRecordRow.status == WatchStatus.COMPLETED.value,
    )
    if since is not None:
        q = q.where(WatchRecordRow.completed_date >= since)
    return q.order_by(WatchRecordRow.id)


def tv_shows_query(user_id: int) -> Select:
    return (
        select(WatchRecordRow)
        .where(
            WatchRecordRow.user_id == user_id,
            WatchRecordRow.content_type == ContentType.TV.value,
        )
        .order_by(WatchRecordRow.id)
    )


# ──────────────────────────────────────────────────────────────────────
# SQLAlchemy store
# ──────────────────────────────────────────────────────────────────────

class SqlWatchRecordStore:
    """WatchRecordStore over an AsyncSession. Seasons/episodes load via selectin."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _row(self, user_id: int, record_id: int) -> Optional[WatchRecordRow]:
        q = (
            select(WatchRecordRow)
            .where(WatchRecordRow.id == record_id, WatchRecordRow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(q)).scalar_one_or_none()

    async def _rows(self, *where: Any, newest_first: bool = False) -> List[WatchRecordRow]:
        order = WatchRecordRow.created_at.desc() if newest_first else WatchRecordRow.id
        q = select(WatchRecordRow).where(*where).order_by(order)
        return list((await self.db.execute(q)).scalars().all())

    async def _fetch(self, q: Select) -> List[WatchRecord]:
        return [to_record(r) for r in (await self.db.execute(q)).scalars().all()]

    # ---- reads used by stats ----

    async def completed_movies(self, user_id: int, since: Optional[datetime] = None) -> List[WatchRecord]:
        return await self._fetch(completed_movies_query(user_id, since))

    async def tv_shows(self, user_id: int) -> List[WatchRecord]:
        return await self._fetch(tv_shows_query(user_id))

    # ---- watchlist ----

    async def list_records(self, user_id: int) -> List[WatchRecord]:
        rows = await self._rows(WatchRecordRow.user_id == user_id, newest_first=True)
        return [to_record(r) for r in rows]

    async def get_record(self, user_id: int, record_id: int) -> Optional[WatchRecord]:
        row = await self._row(user_id, record_id)
        return to_record(row) if row else None

    async def find_by_tmdb(
        self, user_id: int, content_type: ContentType, tmdb_id: str
    ) -> Optional[WatchRecord]:
        rows = await self._rows(
            WatchRecordRow.user_id == user_id,
            WatchRecordRow.content_type == content_type.value,
            WatchRecordRow.tmdb_id == tmdb_id,
        )
        return to_record(rows[0]) if rows else None

    async def add_record(self, record: WatchRecord) -> WatchRecord:
        row = to_row(record)
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateRecordError(record.tmdb_id)
        fresh = await self._row(record.user_id, row.id)
        return to_record(fresh)  # type: ignore[arg-type]

    async def update_record(
        self, user_id: int, record_id: int, fields: Dict[str, Any]
    ) -> Optional[WatchRecord]:
        row = await self._row(user_id, record_id)
        if row is None:
            return None
        for k, v in fields.items():
            if k not in UPDATABLE_FIELDS:
                continue
            if isinstance(v, WatchStatus):
                v = v.value
            setattr(row, k, v)
        await self.db.commit()
        return await self.get_record(user_id, record_id)

    async def toggle_favorite(self, user_id: int, record_id: int) -> Optional[WatchRecord]:
        row = await self._row(user_id, record_id)
        if row is None:
            return None
        row.favorite = not row.favorite
        await self.db.commit()
        return await self.get_record(user_id, record_id)

    async def set_season_status(
        self,
        user_id: int,
        record_id: int,
        season_number: int,
        status: WatchStatus,
        completed_date: Optional[datetime],
    ) -> Optional[WatchRecord]:
        row = await self._row(user_id, record_id)
        if row is None:
            return None
        season = next((s for s in row.seasons if s.season_number == season_number), None)
        if season is None:
            season = SeasonRow(season_number=season_number)
            row.seasons.append(season)
        season.status = status.value
        season.completed_date = completed_date
        await self.db.commit()
        return await self.get_record(user_id, record_id)

    async def delete_record(self, user_id: int, record_id: int) -> bool:
        row = await self._row(user_id, record_id)
        if row is None:
            return False
        await self.db.delete(row)
        await self.db.commit()
        return True

    async def clear_records(self, user_id: int) -> int:
        res = await self.db.execute(delete(WatchRecordRow).where(WatchRecordRow.user_id == user_id))
        await self.db.commit()
        return int(res.rowcount or 0)


# FastAPI dependency
def get_watch_store(db: AsyncSession = Depends(get_async_db)) -> WatchRecordStore:
    return SqlWatchRecordStore(db)
