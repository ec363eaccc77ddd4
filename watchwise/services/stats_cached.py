# watchwise/services/stats_cached.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from watchwise.core.settings import settings
from watchwise.domain import ContentType, Period
from watchwise.infra import cache
from watchwise.services.stats import compute_stats, period_start
from watchwise.services.watch_store import WatchRecordStore

log = logging.getLogger(__name__)


def _cache_enabled() -> bool:
    return settings.stats_cache_ttl > 0 and (cache.is_ready() or bool(settings.redis_url))


def _user_prefix(user_id: int) -> str:
    return f"stats:{int(user_id)}:"


def _gen_key(user_id: int) -> str:
    # Outside _user_prefix so delete_prefix never resets the counter.
    return f"stats:gen:{int(user_id)}"


def cache_key(
    user_id: int,
    content_type: ContentType,
    period: Period,
    now: Optional[datetime] = None,
    generation: int = 0,
) -> str:
    # The window start is part of the key so a new month/year never reads last period's payload.
    since = period_start(period, now)
    window = since.date().isoformat() if since else "all"
    return f"{_user_prefix(user_id)}{generation}:{content_type.value}:{period.value}:{window}"


async def get_stats_cached(
    store: WatchRecordStore,
    user_id: int,
    content_type: ContentType,
    period: Period = Period.OVERALL,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if not _cache_enabled():
        return await compute_stats(store, user_id, content_type, period, now=now)

    # Read the generation before touching the store: a write that lands while
    # we compute bumps it, and our result goes under a key nobody reads again.
    try:
        generation = await cache.get_int(_gen_key(user_id))
    except Exception as e:
        log.warning("stats cache generation read failed for user=%s: %r", user_id, e)
        return await compute_stats(store, user_id, content_type, period, now=now)

    ckey = cache_key(user_id, content_type, period, now, generation)

    # Try cache read
    try:
        val = await cache.get_json(ckey)
        if val is not None:
            return val
    except Exception as e:
        # cache not ready / network hiccup → just fall through to direct
        log.warning("stats cache read failed (%s): %r", ckey, e)

    data = await compute_stats(store, user_id, content_type, period, now=now)

    # Best-effort cache write
    try:
        await cache.set_json(ckey, data, ttl=settings.stats_cache_ttl)
    except Exception as e:
        log.warning("stats cache write failed (%s): %r", ckey, e)

    return data


async def invalidate_user_stats(user_id: int) -> None:
    """Bump the user's stats generation and drop old payloads. Called after watchlist writes."""
    if not _cache_enabled():
        return
    try:
        generation = await cache.incr(_gen_key(user_id))
        n = await cache.delete_prefix(_user_prefix(user_id))
        log.debug("stats cache: user=%s now at generation %d, dropped %d keys", user_id, generation, n)
    except Exception as e:
        log.warning("stats cache invalidation failed for user=%s: %r", user_id, e)
