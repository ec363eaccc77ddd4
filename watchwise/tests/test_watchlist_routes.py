# watchwise/tests/test_watchlist_routes.py
import pytest
from httpx import AsyncClient

from watchwise.tests.factories import movie, season, show


@pytest.mark.asyncio
async def test_add_and_list(client: AsyncClient):
    r = await client.post(
        "/api/movies",
        json={"title": "  Arrival ", "genre": "Sci-Fi, Drama", "duration": 116, "tmdbId": 329865},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["title"] == "Arrival"
    assert body["genre"] == ["Sci-Fi", "Drama"]
    assert body["contentType"] == "movie"
    assert body["status"] == "planned"
    assert body["tmdbId"] == "329865"
    assert body["completedDate"] is None

    await client.post("/api/movies", json={"title": "Dune"})
    r = await client.get("/api/movies")
    assert r.status_code == 200
    assert [m["title"] for m in r.json()] == ["Dune", "Arrival"]  # newest first


@pytest.mark.asyncio
async def test_duplicate_tmdb_entry_is_rejected(client: AsyncClient):
    payload = {"title": "Arrival", "tmdbId": "329865", "contentType": "movie"}
    assert (await client.post("/api/movies", json=payload)).status_code == 200
    r = await client.post("/api/movies", json=payload)
    assert r.status_code == 400
    assert r.json() == {"msg": "This content is already in your watchlist."}

    # same id as a TV show is a different title
    r = await client.post("/api/movies", json={**payload, "contentType": "tv"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_invalid_payload_is_400(client: AsyncClient):
    r = await client.post("/api/movies", json={"title": "Bad", "rating": 11})
    assert r.status_code == 400
    assert "errors" in r.json()

    r = await client.post("/api/movies", json={"title": "   "})
    assert r.status_code == 400

    r = await client.post("/api/movies", json={"title": "Bad", "status": "abandoned"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_created_completed_gets_completed_date(client: AsyncClient):
    r = await client.post("/api/movies", json={"title": "Up", "status": "completed", "rating": 8})
    assert r.json()["completedDate"] is not None


@pytest.mark.asyncio
async def test_status_transitions_stamp_and_clear_completed_date(client: AsyncClient):
    rid = (await client.post("/api/movies", json={"title": "Up"})).json()["id"]

    r = await client.put(f"/api/movies/{rid}", json={"status": "completed"})
    assert r.status_code == 200
    assert r.json()["completedDate"] is not None

    # rating-only update keeps the date
    r = await client.put(f"/api/movies/{rid}", json={"rating": 7.5})
    assert r.json()["rating"] == 7.5
    assert r.json()["completedDate"] is not None

    r = await client.put(f"/api/movies/{rid}", json={"status": "watching"})
    assert r.json()["status"] == "watching"
    assert r.json()["completedDate"] is None


@pytest.mark.asyncio
async def test_favorite_toggle(client: AsyncClient):
    rid = (await client.post("/api/movies", json={"title": "Up"})).json()["id"]
    assert (await client.put(f"/api/movies/{rid}/favorite")).json()["favorite"] is True
    assert (await client.put(f"/api/movies/{rid}/favorite")).json()["favorite"] is False


@pytest.mark.asyncio
async def test_season_status(client: AsyncClient):
    r = await client.post(
        "/api/movies",
        json={"title": "Severance", "contentType": "tv", "tmdbId": "95396", "seasonNumber": 1},
    )
    rid = r.json()["id"]
    assert [s["seasonNumber"] for s in r.json()["seasons"]] == [1]

    r = await client.put(f"/api/movies/{rid}/seasons/1/status", json={"status": "completed"})
    assert r.status_code == 200
    s1 = r.json()["seasons"][0]
    assert s1["status"] == "completed"
    assert s1["completedDate"] is not None

    # unknown season is created on the fly
    r = await client.put(f"/api/movies/{rid}/seasons/2/status", json={"status": "watching"})
    assert [(s["seasonNumber"], s["status"]) for s in r.json()["seasons"]] == [(1, "completed"), (2, "watching")]

    r = await client.put(f"/api/movies/{rid}/seasons/1/status", json={"status": "planned"})
    assert r.json()["seasons"][0]["completedDate"] is None

    r = await client.get("/api/movies/by-tmdb/tv/95396")
    assert r.status_code == 200
    assert r.json()["id"] == rid


@pytest.mark.asyncio
async def test_season_status_on_movie_is_404(client: AsyncClient):
    rid = (await client.post("/api/movies", json={"title": "Up"})).json()["id"]
    r = await client.put(f"/api/movies/{rid}/seasons/1/status", json={"status": "completed"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_other_users_records_are_invisible(client: AsyncClient, store):
    theirs = store._insert(movie("Private", 5, None, user_id=2, tmdb_id="1"))

    assert (await client.put(f"/api/movies/{theirs.id}", json={"rating": 1})).status_code == 404
    assert (await client.put(f"/api/movies/{theirs.id}/favorite")).status_code == 404
    r = await client.delete(f"/api/movies/{theirs.id}")
    assert r.status_code == 404
    assert r.json() == {"msg": "Movie/TV show not found"}
    assert (await client.get("/api/movies/by-tmdb/movie/1")).status_code == 404
    assert (await client.get("/api/movies")).json() == []


@pytest.mark.asyncio
async def test_delete_and_clear(client: AsyncClient, store):
    store._insert(movie("Mine 1", 5, None))
    store._insert(show("Mine 2", [season(1, None, [])]))
    store._insert(movie("Someone else's", 5, None, user_id=2))

    r = await client.delete("/api/movies/1")
    assert r.status_code == 200
    assert [m["title"] for m in (await client.get("/api/movies")).json()] == ["Mine 2"]

    r = await client.delete("/api/movies/clear")
    assert r.status_code == 200
    assert r.json()["removed"] == 1
    assert (await client.get("/api/movies")).json() == []
    assert len(store.records) == 1
