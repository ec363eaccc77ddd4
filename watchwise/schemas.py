# watchwise/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from watchwise.domain import ContentType, WatchStatus

# The web client speaks camelCase on the wire.
_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _split_genres(v: Any) -> Any:
    """Accept a list or a comma separated string; always store a list."""
    if v is None:
        return []
    if isinstance(v, str):
        return [g.strip() for g in v.split(",") if g.strip()]
    return v


# =========================
# Watchlist input
# =========================

class EpisodeIn(BaseModel):
    model_config = _WIRE

    episode_number: int = Field(ge=0)
    name: str = ""
    duration: int = Field(default=0, ge=0)
    rating: Optional[float] = Field(default=None, ge=0, le=10)


class SeasonIn(BaseModel):
    model_config = _WIRE

    season_number: int = Field(ge=0)
    status: WatchStatus = WatchStatus.PLANNED
    episode_count: int = Field(default=0, ge=0)
    duration: int = Field(default=0, ge=0)
    episodes: List[EpisodeIn] = []


class WatchRecordIn(BaseModel):
    """Payload to add a movie or TV show to the watchlist."""
    model_config = _WIRE

    title: str = Field(min_length=1, max_length=300)
    genre: List[str] = []
    duration: int = Field(default=0, ge=0)
    status: WatchStatus = WatchStatus.PLANNED
    rating: float = Field(default=0, ge=0, le=10)
    poster_path: Optional[str] = None
    tmdb_id: Optional[str] = None
    content_type: ContentType = ContentType.MOVIE
    # Shortcut used by the season page: add a show with just this season.
    season_number: Optional[int] = Field(default=None, ge=0)
    seasons: List[SeasonIn] = []

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("genre", mode="before")
    @classmethod
    def _genre_list(cls, v: Any) -> Any:
        return _split_genres(v)

    @field_validator("tmdb_id", mode="before")
    @classmethod
    def _tmdb_str(cls, v: Any) -> Any:
        return str(v) if v is not None else None


class WatchRecordUpdate(BaseModel):
    """Partial update; only fields the client sent are applied."""
    model_config = _WIRE

    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    genre: Optional[List[str]] = None
    duration: Optional[int] = Field(default=None, ge=0)
    status: Optional[WatchStatus] = None
    rating: Optional[float] = Field(default=None, ge=0, le=10)
    favorite: Optional[bool] = None

    @field_validator("genre", mode="before")
    @classmethod
    def _genre_list(cls, v: Any) -> Any:
        return _split_genres(v)


class SeasonStatusIn(BaseModel):
    status: WatchStatus


# =========================
# Watchlist output
# =========================

class EpisodeOut(BaseModel):
    model_config = _WIRE

    episode_number: int
    name: str = ""
    duration: int = 0
    rating: Optional[float] = None


class SeasonOut(BaseModel):
    model_config = _WIRE

    season_number: int
    status: WatchStatus
    completed_date: Optional[datetime] = None
    episode_count: int = 0
    duration: int = 0
    season_rating: float = 0
    episodes: List[EpisodeOut] = []


class WatchRecordOut(BaseModel):
    model_config = _WIRE

    id: int
    title: str
    content_type: ContentType
    status: WatchStatus
    rating: float = 0
    genre: List[str] = []
    duration: int = 0
    favorite: bool = False
    completed_date: Optional[datetime] = None
    poster_path: Optional[str] = None
    tmdb_id: Optional[str] = None
    seasons: List[SeasonOut] = []
    created_at: Optional[datetime] = None
