"""Database models for the leaderboard."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from .session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlayerRecord(Base):
    """SQLAlchemy representation of a leaderboard entry."""

    __tablename__ = "players"
    __table_args__ = (UniqueConstraint("puuid", name="uq_players_puuid"),)

    id = Column(Integer, primary_key=True)
    puuid = Column(String(128), nullable=True, index=True)
    name = Column(String(64), nullable=True)
    tagline = Column(String(16), nullable=True)
    snowballs_hit = Column(Integer, nullable=False, default=0, index=True)
    profile_icon_id = Column(Integer, nullable=False, default=0)
    region = Column(String(8), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def update_from_dict(self, data: dict[str, Any]) -> None:
        """Update the record from a plain dictionary."""

        for key, value in data.items():
            setattr(self, key, value)

    def to_api(self) -> dict[str, Any]:
        return {
            "puuid": self.puuid,
            "name": self.name,
            "tagline": self.tagline,
            "snowballsHit": self.snowballs_hit,
            "profileIconId": self.profile_icon_id,
            "region": self.region,
        }
