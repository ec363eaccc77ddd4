# watchwise/routes/stats.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from watchwise.domain import ContentType, Period
from watchwise.security import get_current_user_id
from watchwise.services.stats_cached import get_stats_cached
from watchwise.services.watch_store import WatchRecordStore, get_watch_store

log = logging.getLogger(__name__)

router = APIRouter(tags=["stats"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/stats")
async def get_stats(
    content_type: Optional[str] = Query(default=None, alias="contentType"),
    period: Optional[str] = Query(default=None),
    user_id: int = Depends(get_current_user_id),
    store: WatchRecordStore = Depends(get_watch_store),
) -> Any:
    """
    Dashboard statistics for the caller.

    contentType: movie | tv (required)
    period:      overall | thisYear | thisMonth (anything else = overall)

    Returns {stats, dailyActivity, top5, top10}; `stats` is {} when nothing
    was completed in the period.
    """
    if not content_type:
        return _error(400, "contentType query parameter is required")
    if content_type not in (ContentType.MOVIE.value, ContentType.TV.value):
        return _error(400, "contentType must be 'movie' or 'tv'")

    ct = ContentType(content_type)
    p = Period.parse(period)
    log.info("stats request: user=%s contentType=%s period=%s", user_id, ct.value, p.value)

    try:
        result: Dict[str, Any] = await get_stats_cached(store, user_id, ct, p)
    except Exception:
        log.exception("stats failed: user=%s contentType=%s period=%s", user_id, ct.value, p.value)
        return _error(500, "Server error occurred while fetching stats.")
    return result
