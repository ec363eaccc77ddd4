# watchwise/routes/watchlist.py
from __future__ import annotations

import logging
from typing import Any, List

from fastapi import APIRouter, Body, Depends, Path
from fastapi.responses import JSONResponse

from watchwise.domain import ContentType, WatchRecord
from watchwise.schemas import SeasonStatusIn, WatchRecordIn, WatchRecordOut, WatchRecordUpdate
from watchwise.security import get_current_user_id
from watchwise.services.stats_cached import invalidate_user_stats
from watchwise.services.watch_store import DuplicateRecordError, WatchRecordStore, get_watch_store
from watchwise.services.watchlist import build_record, completion_date, update_fields

log = logging.getLogger(__name__)

# URL kept as /movies for the web client; it holds TV shows too.
router = APIRouter(prefix="/movies", tags=["watchlist"])

NOT_FOUND = {"msg": "Movie/TV show not found"}
DUPLICATE = {"msg": "This content is already in your watchlist."}

# ──────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────

def _out(record: WatchRecord) -> WatchRecordOut:
    return WatchRecordOut.model_validate(record)


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content=NOT_FOUND)

# ──────────────────────────────────────────────────────────────────────
# Reads
# ──────────────────────────────────────────────────────────────────────

@router.get("", response_model=List[WatchRecordOut])
async def list_watchlist(
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    """Everything on the caller's watchlist, newest first."""
    return [_out(r) for r in await store.list_records(user_id)]


@router.get("/by-tmdb/{content_type}/{tmdb_id}", response_model=WatchRecordOut)
async def get_by_tmdb(
    content_type: ContentType,
    tmdb_id: str,
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    record = await store.find_by_tmdb(user_id, content_type, tmdb_id)
    if record is None:
        return _not_found()
    return _out(record)

# ──────────────────────────────────────────────────────────────────────
# Writes (each one drops the caller's cached stats)
# ──────────────────────────────────────────────────────────────────────

@router.post("", response_model=WatchRecordOut)
async def add_to_watchlist(
    payload: WatchRecordIn,
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    if payload.tmdb_id:
        if await store.find_by_tmdb(user_id, payload.content_type, payload.tmdb_id):
            return JSONResponse(status_code=400, content=DUPLICATE)

    try:
        record = await store.add_record(build_record(user_id, payload))
    except DuplicateRecordError:
        # lost a race with a concurrent add of the same title
        return JSONResponse(status_code=400, content=DUPLICATE)

    log.info("watchlist add: user=%s id=%s type=%s", user_id, record.id, record.content_type.value)
    await invalidate_user_stats(user_id)
    return _out(record)


@router.put("/{record_id}", response_model=WatchRecordOut)
async def update_watch_record(
    record_id: int = Path(ge=1),
    payload: WatchRecordUpdate = Body(...),
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    record = await store.update_record(user_id, record_id, update_fields(payload))
    if record is None:
        return _not_found()
    await invalidate_user_stats(user_id)
    return _out(record)


@router.put("/{record_id}/favorite", response_model=WatchRecordOut)
async def toggle_favorite(
    record_id: int = Path(ge=1),
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    record = await store.toggle_favorite(user_id, record_id)
    if record is None:
        return _not_found()
    await invalidate_user_stats(user_id)
    return _out(record)


@router.put("/{record_id}/seasons/{season_number}/status", response_model=WatchRecordOut)
async def set_season_status(
    record_id: int = Path(ge=1),
    season_number: int = Path(ge=0),
    payload: SeasonStatusIn = Body(...),
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    current = await store.get_record(user_id, record_id)
    if current is None or current.content_type is not ContentType.TV:
        return _not_found()

    record = await store.set_season_status(
        user_id,
        record_id,
        season_number,
        payload.status,
        completion_date(payload.status),
    )
    if record is None:
        return _not_found()
    await invalidate_user_stats(user_id)
    return _out(record)


@router.delete("/clear")
async def clear_watchlist(
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> dict:
    removed = await store.clear_records(user_id)
    log.info("watchlist cleared: user=%s removed=%d", user_id, removed)
    await invalidate_user_stats(user_id)
    return {"msg": "Watchlist cleared", "removed": removed}


@router.delete("/{record_id}")
async def remove_from_watchlist(
    record_id: int = Path(ge=1),
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    if not await store.delete_record(user_id, record_id):
        return _not_found()
    await invalidate_user_stats(user_id)
    return {"msg": "Movie/TV show removed from watchlist"}
