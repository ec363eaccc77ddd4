# watchwise/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class ContentType(str, Enum):
    MOVIE = "movie"
    TV = "tv"


class WatchStatus(str, Enum):
    PLANNED = "planned"
    WATCHING = "watching"
    COMPLETED = "completed"


class Period(str, Enum):
    OVERALL = "overall"
    THIS_YEAR = "thisYear"
    THIS_MONTH = "thisMonth"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Period":
        """Unknown or missing values fall back to OVERALL."""
        for p in cls:
            if p.value == value:
                return p
        return cls.OVERALL


@dataclass
class EpisodeRecord:
    """One tracked episode; only the rating feeds statistics."""
    episode_number: int
    rating: Optional[float] = None
    duration: int = 0
    name: str = ""


@dataclass
class SeasonRecord:
    """Per-season tracking state inside a TV watch record."""
    season_number: int
    status: WatchStatus = WatchStatus.PLANNED
    completed_date: Optional[datetime] = None
    episode_count: int = 0
    duration: int = 0  # minutes
    episodes: List[EpisodeRecord] = field(default_factory=list)

    @property
    def is_rated(self) -> bool:
        return any(e.rating is not None for e in self.episodes)

    @property
    def season_rating(self) -> float:
        rated = [e.rating for e in self.episodes if e.rating is not None]
        if not rated:
            return 0
        return sum(rated) / len(rated)


@dataclass
class WatchRecord:
    """A user's tracked movie or TV show."""
    id: Optional[int]
    user_id: int
    title: str
    content_type: ContentType
    status: WatchStatus = WatchStatus.PLANNED
    rating: float = 0
    genre: List[str] = field(default_factory=list)
    duration: int = 0  # minutes, movies only
    completed_date: Optional[datetime] = None
    poster_path: Optional[str] = None
    tmdb_id: Optional[str] = None
    favorite: bool = False
    seasons: List[SeasonRecord] = field(default_factory=list)
    created_at: Optional[datetime] = None
