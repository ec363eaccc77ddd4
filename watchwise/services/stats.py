# watchwise/services/stats.py
"""
Per-user watch statistics.

One store read, then a pure in-memory reduction. Movies are counted per
record; TV is counted per completed season, with show-level rankings built
from the seasons of each show.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from watchwise.domain import ContentType, Period, SeasonRecord, WatchRecord, WatchStatus
from watchwise.services.watch_store import WatchRecordStore

log = logging.getLogger(__name__)

# Output order is Monday-first; datetime.weekday() is 0 for Monday.
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

TOP_SHORT = 5
TOP_LONG = 10


def empty_result() -> Dict[str, Any]:
    """No completed records in range. Distinct from a zeroed stats block."""
    return {"stats": {}, "dailyActivity": [], "top5": []}


# ──────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────

def _local(dt: datetime) -> datetime:
    # Naive datetimes are taken as server-local time.
    return dt.astimezone()


def period_start(period: Period, now: Optional[datetime] = None) -> Optional[datetime]:
    """Inclusive lower bound on completion dates, or None for OVERALL."""
    now = _local(now) if now is not None else datetime.now().astimezone()
    # Build naive local midnights first so the offset is the one in effect on that day.
    if period is Period.THIS_YEAR:
        return datetime(now.year, 1, 1).astimezone()
    if period is Period.THIS_MONTH:
        return datetime(now.year, now.month, 1).astimezone()
    return None


def daily_activity(dates: Iterable[datetime]) -> List[Dict[str, Any]]:
    days: Counter[str] = Counter()
    for dt in dates:
        days[WEEKDAYS[_local(dt).weekday()]] += 1
    return [{"day": day, "count": days[day]} for day in WEEKDAYS]


def favorite_genre(genre_lists: Iterable[Sequence[str]]) -> Optional[str]:
    """
    Most frequent genre across all lists. Ties go to the genre seen first,
    in input order (Counter keeps insertion order and most_common is stable).
    """
    genre_counter: Counter[str] = Counter()
    for genres in genre_lists:
        for g in genres:
            genre_counter[g] += 1

    top = genre_counter.most_common(1)
    return top[0][0] if top else None


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0


# ──────────────────────────────────────────────────────────────────────
# Movies
# ──────────────────────────────────────────────────────────────────────

def _movie_entry(m: WatchRecord) -> Dict[str, Any]:
    return {"id": m.id, "title": m.title, "rating": m.rating, "posterPath": m.poster_path}


def movie_stats(movies: Sequence[WatchRecord]) -> Dict[str, Any]:
    """Reduce already-filtered completed movies into the stats payload."""
    if not movies:
        return empty_result()

    # ---- 1) COUNTS / AVERAGES ----
    watch_count = len(movies)
    avg_rate = sum(m.rating or 0 for m in movies) / watch_count
    watch_time = sum(m.duration or 0 for m in movies)

    # ---- 2) BEST / WORST (first record wins ties) ----
    best = worst = movies[0]
    for m in movies[1:]:
        if m.rating > best.rating:
            best = m
        if m.rating < worst.rating:
            worst = m

    # ---- 3) RANKINGS ----
    ranked = sorted(movies, key=lambda m: m.rating or 0, reverse=True)

    return {
        "stats": {
            "watchCount": watch_count,
            "avgRate": round(avg_rate, 2),
            "bestRatedMovie": best.title,
            "bestRate": best.rating,
            "worstRatedMovie": worst.title,
            "worstRate": worst.rating,
            "favoriteGenre": favorite_genre(m.genre for m in movies),
            "watchTime": watch_time,
        },
        "dailyActivity": daily_activity(m.completed_date for m in movies if m.completed_date),
        "top5": [_movie_entry(m) for m in ranked[:TOP_SHORT]],
        "top10": [_movie_entry(m) for m in ranked[:TOP_LONG]],
    }


# ──────────────────────────────────────────────────────────────────────
# TV
# ──────────────────────────────────────────────────────────────────────

@dataclass
class CompletedSeason:
    """A completed season flattened out of its show."""
    show_key: int
    show_title: str
    show_genres: List[str]
    season: SeasonRecord

    @property
    def completed_date(self) -> Optional[datetime]:
        return self.season.completed_date

    @property
    def rating(self) -> float:
        return self.season.season_rating


@dataclass
class ShowSummary:
    title: str
    genres: List[str]
    season_count: int
    avg_rating: float


def completed_seasons(shows: Sequence[WatchRecord], since: Optional[datetime] = None) -> List[CompletedSeason]:
    """
    Completed seasons across all shows, in show then season order. Seasons
    without a completion date are dropped; `since` is an inclusive bound on
    the season's own completion date.
    """
    since = _local(since) if since is not None else None
    out: List[CompletedSeason] = []
    for idx, show in enumerate(shows):
        for s in show.seasons:
            if s.status != WatchStatus.COMPLETED or s.completed_date is None:
                continue
            if since is not None and _local(s.completed_date) < since:
                continue
            out.append(CompletedSeason(idx, show.title, list(show.genre or []), s))
    return out


def summarize_shows(seasons: Sequence[CompletedSeason]) -> List[ShowSummary]:
    """
    Group seasons by show (first-seen order). A show's average only uses
    seasons that have at least one rated episode.
    """
    grouped: Dict[int, List[CompletedSeason]] = {}
    for cs in seasons:
        grouped.setdefault(cs.show_key, []).append(cs)

    out: List[ShowSummary] = []
    for group in grouped.values():
        rated = [cs.rating for cs in group if cs.season.is_rated]
        out.append(
            ShowSummary(
                title=group[0].show_title,
                genres=group[0].show_genres,
                season_count=len(group),
                avg_rating=_mean(rated),
            )
        )
    return out


def tv_stats(seasons: Sequence[CompletedSeason]) -> Dict[str, Any]:
    """Reduce already-filtered completed seasons into the stats payload."""
    if not seasons:
        return empty_result()

    # ---- 1) SEASON-LEVEL TOTALS ----
    watch_count = len(seasons)
    episodes_watched = sum(cs.season.episode_count or 0 for cs in seasons)
    watch_time = sum(cs.season.duration or 0 for cs in seasons)
    avg_rate = sum(cs.rating for cs in seasons) / watch_count

    # ---- 2) SHOW-LEVEL ----
    shows = summarize_shows(seasons)
    tv_series_watched = sum(1 for s in shows if s.season_count > 0)

    best = worst = shows[0]
    for s in shows[1:]:
        if s.avg_rating > best.avg_rating:
            best = s
        if s.avg_rating < worst.avg_rating:
            worst = s

    # Genres count once per show, not per season.
    genre = favorite_genre(s.genres for s in shows)

    ranked = sorted(shows, key=lambda s: s.avg_rating, reverse=True)

    def entry(s: ShowSummary) -> Dict[str, Any]:
        return {"title": s.title, "rating": round(s.avg_rating, 2)}

    return {
        "stats": {
            "watchCount": watch_count,
            "avgRate": round(avg_rate, 2),
            "bestRatedTVSeries": best.title,
            "bestRate": round(best.avg_rating, 2),
            "worstRatedTVSeries": worst.title,
            "worstRate": round(worst.avg_rating, 2),
            "episodesWatched": episodes_watched,
            "tvSeriesWatched": tv_series_watched,
            "favoriteGenre": genre,
            "watchTime": watch_time,
        },
        "dailyActivity": daily_activity(cs.completed_date for cs in seasons if cs.completed_date),
        "top5": [entry(s) for s in ranked[:TOP_SHORT]],
        "top10": [entry(s) for s in ranked[:TOP_LONG]],
    }


# ──────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────

async def compute_stats(
    store: WatchRecordStore,
    user_id: int,
    content_type: ContentType,
    period: Period = Period.OVERALL,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Stats for one user / content type / period. Store errors propagate;
    there is no partial result.
    """
    since = period_start(period, now)

    if content_type is ContentType.MOVIE:
        movies = await store.completed_movies(user_id, since=since)
        log.debug("stats: user=%s movies=%d period=%s", user_id, len(movies), period.value)
        return movie_stats(movies)

    shows = await store.tv_shows(user_id)
    seasons = completed_seasons(shows, since=since)
    log.debug(
        "stats: user=%s shows=%d seasons=%d period=%s",
        user_id, len(shows), len(seasons), period.value,
    )
    return tv_stats(seasons)
