# watchwise/infra/cache.py
from __future__ import annotations

import json
from typing import Any, Optional

import redis.asyncio as redis

from watchwise.core.settings import settings

_redis: Optional[redis.Redis] = None


def init(url: str) -> None:
    """Synchronous init. Stores a global Redis client."""
    global _redis
    _redis = redis.from_url(url, decode_responses=True)


def is_ready() -> bool:
    return _redis is not None


def client() -> redis.Redis:
    """
    Return a Redis client. If not initialized, lazily init from REDIS_URL.
    Raises RuntimeError when there is nothing to connect to.
    """
    global _redis
    if _redis is None:
        if settings.redis_url:
            init(settings.redis_url)
        else:
            raise RuntimeError(
                "Redis cache not initialized and REDIS_URL not set. "
                "Set REDIS_URL or call cache.init(REDIS_URL) on startup."
            )
    return _redis  # type: ignore[return-value]


async def close() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def get_json(key: str) -> Any:
    val = await client().get(key)
    if val is None:
        return None
    try:
        return json.loads(val)
    except ValueError:
        return None


async def set_json(key: str, value: Any, ttl: int = 3600) -> None:
    data = json.dumps(value, ensure_ascii=False, default=str)
    await client().set(key, data, ex=ttl)


async def delete_prefix(prefix: str) -> int:
    """Delete every key starting with prefix. Returns the number removed."""
    c = client()
    keys = [k async for k in c.scan_iter(match=f"{prefix}*")]
    if not keys:
        return 0
    return int(await c.delete(*keys))


async def get_int(key: str) -> int:
    """Integer counter value, 0 when the key is missing."""
    val = await client().get(key)
    return int(val) if val is not None else 0


async def incr(key: str) -> int:
    return int(await client().incr(key))
