# watchwise/tests/test_store_and_cache.py
from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from watchwise.database import _to_async_driver
from watchwise.db_models import EpisodeRow, SeasonRow, WatchRecordRow
from watchwise.domain import ContentType, Period, WatchStatus
from watchwise.infra import cache
from watchwise.services import stats_cached
from watchwise.services.watch_store import completed_movies_query, to_record, to_row, tv_shows_query
from watchwise.tests.factories import InMemoryWatchStore, movie, season, show


# ---------------------------------------------------------------- db plumbing

def test_async_driver_url():
    assert _to_async_driver("postgresql://u:p@db/w") == "postgresql+asyncpg://u:p@db/w"
    assert _to_async_driver("postgresql+psycopg://u:p@db/w") == "postgresql+asyncpg://u:p@db/w"
    assert _to_async_driver("postgres://u:p@db/w") == "postgresql+asyncpg://u:p@db/w"
    assert _to_async_driver(' "postgresql+asyncpg://u:p@db/w" ') == "postgresql+asyncpg://u:p@db/w"


def test_row_to_record():
    done = datetime(2024, 3, 1, 20, tzinfo=timezone.utc)
    row = WatchRecordRow(
        id=7,
        user_id=1,
        title="The Wire",
        content_type="tv",
        status="watching",
        rating=0,
        genre=["Crime"],
        duration=0,
        favorite=True,
        tmdb_id="1438",
        seasons=[
            SeasonRow(
                season_number=1,
                status="completed",
                completed_date=done,
                episode_count=2,
                duration=120,
                episodes=[
                    EpisodeRow(episode_number=1, name="The Target", duration=60, rating=9.0),
                    EpisodeRow(episode_number=2, name="The Detail", duration=60, rating=None),
                ],
            )
        ],
    )

    rec = to_record(row)
    assert rec.id == 7
    assert rec.content_type is ContentType.TV
    assert rec.status is WatchStatus.WATCHING
    assert rec.favorite is True
    s1 = rec.seasons[0]
    assert s1.status is WatchStatus.COMPLETED
    assert s1.completed_date == done
    assert s1.is_rated
    assert s1.season_rating == 9.0


def test_record_to_row_uses_plain_values():
    rec = show("Dark", [season(1, None, [8], status=WatchStatus.WATCHING)], tmdb_id="70523")
    row = to_row(rec)
    assert row.content_type == "tv"
    assert row.status == "watching"
    assert row.seasons[0].status == "watching"
    assert row.seasons[0].episodes[0].rating == 8


def _pg(q):
    return q.compile(dialect=postgresql.dialect())


def test_completed_movies_query_bounds_period_and_orders_by_id():
    since = datetime(2024, 3, 1).astimezone()
    compiled = _pg(completed_movies_query(1, since))
    sql = str(compiled)
    assert "watch_records.completed_date >= %(completed_date_1)s" in sql
    assert sql.rstrip().endswith("ORDER BY watch_records.id")
    assert compiled.params["completed_date_1"] == since
    assert compiled.params["user_id_1"] == 1
    assert {"movie", "completed"} <= set(compiled.params.values())

    overall = str(_pg(completed_movies_query(1)))
    assert "completed_date >=" not in overall
    assert "ORDER BY watch_records.id" in overall


def test_tv_shows_query_filters_user_and_type():
    compiled = _pg(tv_shows_query(5))
    sql = str(compiled)
    assert "watch_records.content_type = %(content_type_1)s" in sql
    assert "completed_date" not in sql.split("WHERE", 1)[1]
    assert compiled.params["content_type_1"] == "tv"
    assert compiled.params["user_id_1"] == 5


# ---------------------------------------------------------------- stats cache

NOW = datetime(2024, 3, 15, 12)


def test_cache_key_carries_period_window():
    k_month = stats_cached.cache_key(1, ContentType.MOVIE, Period.THIS_MONTH, NOW)
    k_next = stats_cached.cache_key(1, ContentType.MOVIE, Period.THIS_MONTH, datetime(2024, 4, 2, 12))
    assert k_month == "stats:1:0:movie:thisMonth:2024-03-01"
    assert k_month != k_next
    assert stats_cached.cache_key(1, ContentType.TV, Period.OVERALL, NOW) == "stats:1:0:tv:overall:all"
    assert stats_cached.cache_key(1, ContentType.TV, Period.OVERALL, NOW, generation=3) == "stats:1:3:tv:overall:all"


class WriteDuringRead(InMemoryWatchStore):
    """Simulates a watchlist write committing while a stats request is reading."""

    raced = False

    async def completed_movies(self, user_id, since=None):
        out = await super().completed_movies(user_id, since)
        if not self.raced:
            self.raced = True
            self._insert(movie("B", 6, datetime(2024, 3, 3, 12)))
            await stats_cached.invalidate_user_stats(user_id)
        return out


@pytest.mark.asyncio
async def test_write_during_compute_is_not_served_from_cache():
    store = WriteDuringRead([movie("A", 8, datetime(2024, 3, 2, 12))])

    first = await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    assert first["stats"]["watchCount"] == 1

    second = await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    assert second["stats"]["watchCount"] == 2
    assert await cache.get_int("stats:gen:1") == 1


@pytest.mark.asyncio
async def test_cached_stats_hit_and_invalidate():
    store = InMemoryWatchStore([movie("A", 8, datetime(2024, 3, 2, 12))])
    other = stats_cached.cache_key(2, ContentType.MOVIE, Period.OVERALL, NOW)
    await cache.set_json(other, {"stats": {}}, ttl=60)

    first = await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    second = await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    assert first == second
    assert store.reads == 1

    await stats_cached.invalidate_user_stats(1)
    await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    assert store.reads == 2
    # other users' entries survive
    assert await cache.get_json(other) == {"stats": {}}


@pytest.mark.asyncio
async def test_cache_errors_never_fail_stats(monkeypatch):
    async def boom(*a, **k):
        raise ConnectionError("redis down")

    monkeypatch.setattr(cache, "get_json", boom)
    monkeypatch.setattr(cache, "set_json", boom)
    monkeypatch.setattr(cache, "delete_prefix", boom)
    monkeypatch.setattr(cache, "get_int", boom)
    monkeypatch.setattr(cache, "incr", boom)

    store = InMemoryWatchStore([movie("A", 8, datetime(2024, 3, 2, 12))])
    out = await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    assert out["stats"]["watchCount"] == 1
    await stats_cached.invalidate_user_stats(1)


@pytest.mark.asyncio
async def test_cache_disabled_by_zero_ttl(monkeypatch):
    monkeypatch.setattr(stats_cached.settings, "stats_cache_ttl", 0)
    store = InMemoryWatchStore([movie("A", 8, datetime(2024, 3, 2, 12))])
    for _ in range(2):
        await stats_cached.get_stats_cached(store, 1, ContentType.MOVIE, Period.OVERALL, now=NOW)
    assert store.reads == 2
