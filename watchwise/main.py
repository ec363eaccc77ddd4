# watchwise/main.py — app factory, router mounting, error shapes

from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import APIRouter, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from watchwise.core.settings import settings
from watchwise.database import async_engine
from watchwise.infra import cache

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.redis_url:
        cache.init(settings.redis_url)
        log.info("Stats cache enabled (ttl=%ss)", settings.stats_cache_ttl)
    yield
    await cache.close()
    await async_engine.dispose()


app = FastAPI(
    title="WatchWise API",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url=None,
    lifespan=lifespan,
)

# ───────────────── CORS ─────────────────
# Bearer tokens (Authorization / x-auth-token header), not cookies.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ───────────────── Error shapes ─────────────────
@app.exception_handler(RequestValidationError)
async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"errors": jsonable_encoder(exc.errors())})


@app.exception_handler(SQLAlchemyError)
async def _db_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("Database error on %s %s: %r", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"msg": "Server error"})


# Single API namespace prefix
api = APIRouter(prefix="/api")


def _include(router_import: str, attr: str = "router", *, name_hint: str = "") -> None:
    """
    Import a router lazily and include it.
    If missing/broken, log the full traceback instead of taking the app down.
    """
    label = name_hint or router_import
    try:
        mod = __import__(router_import, fromlist=[attr])
        router = getattr(mod, attr)
        api.include_router(router)
        log.info("Mounted router: %s (prefix=%s)", label, getattr(router, "prefix", ""))
    except Exception as e:
        tb = traceback.format_exc()
        log.error("FAILED to mount router: %s (%s)", label, router_import)
        log.error("Reason: %r", e)
        log.error("Traceback:\n%s", tb)


# ───────────────── Mount routers ─────────────────
_include("watchwise.routes.health", name_hint="health")
_include("watchwise.routes.stats", name_hint="stats")
_include("watchwise.routes.watchlist", name_hint="watchlist")

# Attach /api router once
app.include_router(api)
