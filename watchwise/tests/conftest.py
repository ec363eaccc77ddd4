# watchwise/tests/conftest.py
import pytest
import fakeredis.aioredis
from httpx import ASGITransport, AsyncClient

from watchwise.tests.factories import InMemoryWatchStore


@pytest.fixture(autouse=True)
async def fake_app_cache(monkeypatch):
    """
    Ensure watchwise.infra.cache uses a FakeRedis client in tests.
    Works whether code reads cache._redis directly or goes through
    cache.init(...), which uses redis.asyncio.from_url().
    """
    # Create a single FakeRedis instance per test
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)

    # 1) Force the module-level _redis handle
    import watchwise.infra.cache as app_cache
    monkeypatch.setattr(app_cache, "_redis", fake, raising=True)

    # 2) If code calls cache.init(url) internally, make from_url return fake
    import redis.asyncio as redis_asyncio
    monkeypatch.setattr(redis_asyncio, "from_url", lambda *a, **k: fake, raising=True)

    try:
        yield fake
    finally:
        await fake.aclose()


@pytest.fixture
def store() -> InMemoryWatchStore:
    return InMemoryWatchStore()


@pytest.fixture
def app(store):
    from watchwise.main import app as fastapi_app
    from watchwise.services.watch_store import get_watch_store

    fastapi_app.dependency_overrides[get_watch_store] = lambda: store
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides = {}


@pytest.fixture
def auth_headers():
    from watchwise.security import create_access_token

    return {"Authorization": f"Bearer {create_access_token(1)}"}


@pytest.fixture
async def client(app, auth_headers):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver", headers=auth_headers) as ac:
        yield ac
