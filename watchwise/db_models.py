# watchwise/db_models.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class WatchRecordRow(Base):
    """
    One row per user x title. TV shows keep their per-season state in
    watch_seasons; movie-only columns (rating, duration) stay 0 for TV.
    """
    __tablename__ = "watch_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Identity lives in the external auth service; no FK on purpose.
    user_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content_type: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="planned")
    rating: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")  # 0.0–10.0
    genre: Mapped[List[str]] = mapped_column(ARRAY(String(64)), nullable=False, server_default="{}")
    duration: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    poster_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tmdb_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    seasons: Mapped[List["SeasonRow"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="SeasonRow.season_number",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "tmdb_id", "content_type", name="uq_watch_user_tmdb_type"),
    )


class SeasonRow(Base):
    __tablename__ = "watch_seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("watch_records.id", ondelete="CASCADE"), index=True
    )
    season_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="planned")
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    episode_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    duration: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    record: Mapped["WatchRecordRow"] = relationship(back_populates="seasons")
    episodes: Mapped[List["EpisodeRow"]] = relationship(
        back_populates="season",
        cascade="all, delete-orphan",
        order_by="EpisodeRow.episode_number",
        lazy="selectin",
    )

    __table_args__ = (UniqueConstraint("record_id", "season_number", name="uq_season_record_number"),)


class EpisodeRow(Base):
    __tablename__ = "watch_episodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_id: Mapped[int] = mapped_column(
        ForeignKey("watch_seasons.id", ondelete="CASCADE"), index=True
    )
    episode_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False, server_default="")
    duration: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    season: Mapped["SeasonRow"] = relationship(back_populates="episodes")


__all__ = ["Base", "WatchRecordRow", "SeasonRow", "EpisodeRow"]
