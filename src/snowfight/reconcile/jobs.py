"""Batch jobs that reconcile stored leaderboard entries with the Riot API.

Every job walks its records one at a time. A failed lookup for one record is
logged and counted, and the job moves on to the next record. Store errors are
not caught here; they abort the job.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional, Set, TypeVar

import httpx

from ..db.models import PlayerRecord
from ..db.repository import (
    delete_player,
    list_players,
    repair_player,
    update_puuid,
    update_score,
    upsert_player,
)
from ..db.session import session_scope
from ..riot.base import Player, RiotAPIError
from ..riot.client import RESPONSE_ERRORS, RiotClient
from ..telemetry.events import TelemetryClient, TelemetryEvent

logger = logging.getLogger("snowfight.reconcile")

T = TypeVar("T")

RECORD_ERRORS = (RiotAPIError, *RESPONSE_ERRORS)


@dataclass(slots=True)
class ReconcileReport:
    """Counters describing one job run."""

    job: str
    processed: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


async def _store(operation: Callable[..., T], *args) -> T:
    def _run() -> T:
        with session_scope() as session:
            return operation(session, *args)

    return await asyncio.to_thread(_run)


def _log_failure(action: str, label: str, exc: Exception) -> None:
    if isinstance(exc, RiotAPIError):
        logger.error("Failed to %s for %s: %s (%s)", action, label, exc.status_code, exc.bucket)
    elif isinstance(exc, httpx.HTTPError):
        logger.error("Network error while trying to %s for %s: %s", action, label, exc)
    else:
        logger.error("Unexpected payload while trying to %s for %s: %r", action, label, exc)


def _label(record: PlayerRecord) -> str:
    return f"{record.name}#{record.tagline}"


async def _finish(report: ReconcileReport, telemetry: Optional[TelemetryClient]) -> ReconcileReport:
    logger.info(
        "%s complete: processed=%s updated=%s deleted=%s skipped=%s failed=%s",
        report.job,
        report.processed,
        report.updated,
        report.deleted,
        report.skipped,
        report.failed,
    )
    if telemetry is not None:
        await telemetry.record(TelemetryEvent(name="reconcile.completed", attributes=report.as_dict()))
    return report


async def update_scores(riot: RiotClient, *, telemetry: Optional[TelemetryClient] = None) -> ReconcileReport:
    """Refresh the snowballs-hit score of every stored player."""

    report = ReconcileReport(job="update-scores")
    players = await _store(list_players)
    for record in players:
        report.processed += 1
        if not record.puuid or not record.region:
            logger.warning("Skipping %s: no PUUID or region stored", _label(record))
            report.skipped += 1
            continue
        try:
            score = await riot.snowballs_hit(record.puuid, record.region)
        except RECORD_ERRORS as exc:
            _log_failure("fetch challenges", _label(record), exc)
            report.failed += 1
            continue
        await _store(update_score, record.puuid, score)
        logger.info("Updated %s with new score %s", _label(record), score)
        report.updated += 1
    return await _finish(report, telemetry)


async def migrate_puuids(riot: RiotClient, *, telemetry: Optional[TelemetryClient] = None) -> ReconcileReport:
    """Re-resolve every stored PUUID from its Riot ID.

    PUUIDs are encrypted per API key, so they must be refreshed after the key
    changes.
    """

    report = ReconcileReport(job="migrate-puuids")
    players = await _store(list_players)
    for record in players:
        report.processed += 1
        if not record.name or not record.tagline:
            logger.warning("Skipping entry %s: no Riot ID stored", record.id)
            report.skipped += 1
            continue
        try:
            puuid = await riot.puuid_by_riot_id(record.name, record.tagline, record.region or "")
        except RECORD_ERRORS as exc:
            _log_failure("fetch PUUID", _label(record), exc)
            report.failed += 1
            continue
        if await _store(update_puuid, record.id, puuid):
            logger.info("Updated %s with new PUUID", _label(record))
            report.updated += 1
        else:
            report.deleted += 1
    return await _finish(report, telemetry)


async def repair_entries(riot: RiotClient, *, telemetry: Optional[TelemetryClient] = None) -> ReconcileReport:
    """Rebuild PUUID, profile icon and score for every entry with a full Riot ID."""

    report = ReconcileReport(job="repair")
    players = await _store(list_players)
    for record in players:
        report.processed += 1
        if not record.name or not record.tagline or not record.region:
            logger.warning("Skipping invalid entry %s", record.id)
            report.skipped += 1
            continue
        try:
            player = await riot.fetch_player(record.name, record.tagline, record.region)
        except RECORD_ERRORS as exc:
            _log_failure("repair", _label(record), exc)
            report.failed += 1
            continue
        if await _store(repair_player, record.id, player):
            logger.info("Repaired %s", player.riot_id)
            report.updated += 1
        else:
            report.deleted += 1
    return await _finish(report, telemetry)


async def remove_invalid_entries(
    riot: RiotClient, *, telemetry: Optional[TelemetryClient] = None
) -> ReconcileReport:
    """Delete malformed entries and entries whose Riot ID no longer resolves.

    Only a client-error answer from the account lookup counts as proof that
    the Riot ID is gone. Throttling, server errors and network failures leave
    the entry in place.
    """

    report = ReconcileReport(job="remove-invalid")
    players = await _store(list_players)
    for record in players:
        report.processed += 1
        if not all(isinstance(value, str) for value in (record.name, record.tagline, record.region)):
            logger.warning("Deleting malformed entry %s", record.id)
            report.deleted += await _store(delete_player, record.id)
            continue

        name, tagline = record.name.strip(), record.tagline.strip()
        try:
            await riot.puuid_by_riot_id(name, tagline, record.region)
        except RiotAPIError as exc:
            if exc.bucket in ("not_found", "client_error"):
                logger.warning("%s#%s not found (%s) - %s", name, tagline, exc.status_code, exc.detail)
                report.deleted += await _store(delete_player, record.id)
                logger.info("Deleted %s#%s", name, tagline)
            else:
                _log_failure("validate", f"{name}#{tagline}", exc)
                report.failed += 1
            continue
        except RESPONSE_ERRORS as exc:
            _log_failure("validate", f"{name}#{tagline}", exc)
            report.failed += 1
            continue
        logger.info("Valid entry: %s#%s", name, tagline)
    return await _finish(report, telemetry)


async def scrape_matches(
    riot: RiotClient,
    game_name: str,
    tagline: str,
    region: str,
    count: int,
    *,
    telemetry: Optional[TelemetryClient] = None,
) -> ReconcileReport:
    """Upsert every participant of a seed player's recent ARAM matches."""

    report = ReconcileReport(job="scrape-matches")
    try:
        seed_puuid = await riot.puuid_by_riot_id(game_name, tagline, region)
    except RECORD_ERRORS as exc:
        _log_failure("fetch PUUID", f"{game_name}#{tagline}", exc)
        logger.error("Cannot proceed without a valid PUUID")
        report.failed += 1
        return await _finish(report, telemetry)

    try:
        match_ids: List[str] = await riot.aram_match_ids(seed_puuid, region, count)
    except RECORD_ERRORS as exc:
        _log_failure("fetch match IDs", f"{game_name}#{tagline}", exc)
        report.failed += 1
        return await _finish(report, telemetry)

    checked: Set[str] = set()
    for match_id in match_ids:
        try:
            participants = await riot.match_participants(match_id, region)
        except RiotAPIError as exc:
            _log_failure("fetch match data", match_id, exc)
            report.failed += 1
            break
        except RESPONSE_ERRORS as exc:
            _log_failure("fetch match data", match_id, exc)
            report.failed += 1
            continue

        for puuid in participants:
            if puuid in checked:
                continue
            report.processed += 1
            try:
                icon_id = await riot.profile_icon_id(puuid, region)
                score = await riot.snowballs_hit(puuid, region)
                name, tag = await riot.riot_id_by_puuid(puuid, region)
            except RECORD_ERRORS as exc:
                _log_failure("fetch participant", puuid, exc)
                report.failed += 1
                continue
            player = Player(
                puuid=puuid,
                name=name,
                tagline=tag,
                snowballs_hit=score,
                profile_icon_id=icon_id,
                region=region,
            )
            await _store(upsert_player, player)
            logger.info("%s added", player.riot_id)
            checked.add(puuid)
            report.updated += 1
    return await _finish(report, telemetry)
