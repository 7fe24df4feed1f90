"""Database repository helpers."""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..riot.base import Player
from .models import PlayerRecord

logger = logging.getLogger("snowfight.repository")


def _player_to_dict(player: Player) -> dict:
    return {
        "puuid": player.puuid,
        "name": player.name,
        "tagline": player.tagline,
        "snowballs_hit": player.snowballs_hit,
        "profile_icon_id": player.profile_icon_id,
        "region": player.region,
    }


def upsert_player(session: Session, player: Player) -> PlayerRecord:
    """Insert a player or overwrite the entry sharing its PUUID."""

    payload = _player_to_dict(player)
    existing = session.execute(
        select(PlayerRecord).where(PlayerRecord.puuid == player.puuid)
    ).scalar_one_or_none()
    if existing:
        existing.update_from_dict(payload)
        record = existing
    else:
        record = PlayerRecord(**payload)
        session.add(record)
    session.flush()
    logger.debug("Upserted %s (%s)", player.riot_id, player.puuid)
    return record


def list_leaderboard(session: Session) -> List[PlayerRecord]:
    """Retrieve stored players ranked by snowballs hit, highest first."""

    stmt = select(PlayerRecord).order_by(PlayerRecord.snowballs_hit.desc(), PlayerRecord.id.asc())
    return list(session.execute(stmt).scalars().all())


def list_players(session: Session) -> List[PlayerRecord]:
    return list(session.execute(select(PlayerRecord).order_by(PlayerRecord.id)).scalars().all())


def update_score(session: Session, puuid: str, snowballs_hit: int) -> int:
    result = session.execute(
        update(PlayerRecord).where(PlayerRecord.puuid == puuid).values(snowballs_hit=snowballs_hit)
    )
    return result.rowcount


def _puuid_holder(session: Session, record_id: int, puuid: str) -> Optional[PlayerRecord]:
    return session.execute(
        select(PlayerRecord).where(PlayerRecord.puuid == puuid, PlayerRecord.id != record_id)
    ).scalar_one_or_none()


def update_puuid(session: Session, record_id: int, puuid: str) -> bool:
    """Set the PUUID of one entry.

    When another entry already holds ``puuid`` the two describe the same
    player, so this entry is deleted instead. Returns ``False`` in that case.
    """

    if _puuid_holder(session, record_id, puuid) is not None:
        delete_player(session, record_id)
        logger.info("Merged entry %s into the existing entry for %s", record_id, puuid)
        return False
    session.execute(update(PlayerRecord).where(PlayerRecord.id == record_id).values(puuid=puuid))
    return True


def repair_player(session: Session, record_id: int, player: Player) -> bool:
    """Overwrite one entry with freshly resolved data.

    Duplicates are merged the same way as in :func:`update_puuid`: the entry
    already holding the PUUID receives the data and ``record_id`` is deleted.
    """

    payload = _player_to_dict(player)
    holder = _puuid_holder(session, record_id, player.puuid)
    if holder is not None:
        holder.update_from_dict(payload)
        delete_player(session, record_id)
        session.flush()
        logger.info("Merged entry %s into the existing entry for %s", record_id, player.riot_id)
        return False
    session.execute(update(PlayerRecord).where(PlayerRecord.id == record_id).values(**payload))
    return True


def delete_player(session: Session, record_id: int) -> int:
    result = session.execute(delete(PlayerRecord).where(PlayerRecord.id == record_id))
    return result.rowcount
