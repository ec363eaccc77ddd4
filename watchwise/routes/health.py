# watchwise/routes/health.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter
from sqlalchemy import text

from watchwise.core.settings import settings
from watchwise.database import async_engine
from watchwise.infra import cache

log = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


# --- simple DB ping ---------------------------------------------------------
async def ping_db() -> bool:
    try:
        async with async_engine.connect() as conn:
            res = await conn.execute(text("SELECT 1"))
            return res.scalar() == 1
    except Exception as e:
        log.warning("db ping failed: %r", e)
        return False


# --- Redis ping (skipped when no cache is configured) -----------------------
async def ping_redis() -> Dict[str, Any]:
    if not (cache.is_ready() or settings.redis_url):
        return {"ok": None, "reason": "cache disabled"}
    try:
        ok = await cache.client().ping()
        return {"ok": bool(ok)}
    except Exception as e:
        return {"ok": False, "error": str(e)}


@router.get("/health", summary="Liveness")
async def health() -> Dict[str, Any]:
    # super cheap liveness (no external deps)
    return {"ok": True}


@router.get("/ready", summary="Readiness")
async def ready() -> Dict[str, Any]:
    db_ok = await ping_db()
    redis_state = await ping_redis()
    return {"ok": db_ok and redis_state["ok"] is not False, "db": db_ok, "redis": redis_state}
