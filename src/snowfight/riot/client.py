"""Async client for the Riot Games endpoints used by the leaderboard."""
from __future__ import annotations

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from ..core.http import get_async_client
from .base import ARAM_QUEUE_ID, Player, RiotAPIError, regional_route, snowballs_hit

logger = logging.getLogger("snowfight.riot")

# Transport failures plus anything a malformed JSON body can raise while it is unpacked.
RESPONSE_ERRORS = (httpx.HTTPError, KeyError, ValueError, TypeError, AttributeError)


def _quote(segment: str) -> str:
    return quote(segment, safe="")


class RiotClient:
    """Thin wrapper over the account, summoner, challenges and match APIs.

    Every request opens a short-lived ``httpx.AsyncClient``. A ``transport``
    may be supplied to route requests somewhere other than the network.
    """

    def __init__(self, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    async def _get(self, url: str, *, step: str, params: Optional[dict] = None) -> Any:
        async with get_async_client(self._transport) as client:
            response = await client.get(url, params=params)
        if response.status_code != httpx.codes.OK:
            logger.debug("%s request to %s failed with %s", step, url, response.status_code)
            raise RiotAPIError(step, response.status_code, response.text)
        return response.json()

    async def puuid_by_riot_id(self, name: str, tagline: str, region: str) -> str:
        url = (
            f"https://{regional_route(region)}.api.riotgames.com"
            f"/riot/account/v1/accounts/by-riot-id/{_quote(name)}/{_quote(tagline)}"
        )
        payload = await self._get(url, step="PUUID")
        return payload["puuid"]

    async def riot_id_by_puuid(self, puuid: str, region: str) -> tuple[str, str]:
        url = f"https://{regional_route(region)}.api.riotgames.com/riot/account/v1/accounts/by-puuid/{puuid}"
        payload = await self._get(url, step="Player")
        return payload["gameName"], payload["tagLine"]

    async def profile_icon_id(self, puuid: str, region: str) -> int:
        url = f"https://{region}.api.riotgames.com/lol/summoner/v4/summoners/by-puuid/{puuid}"
        payload = await self._get(url, step="Profile icon ID")
        return int(payload["profileIconId"])

    async def snowballs_hit(self, puuid: str, region: str) -> int:
        url = f"https://{region}.api.riotgames.com/lol/challenges/v1/player-data/{puuid}"
        payload = await self._get(url, step="Challenge data")
        return snowballs_hit(payload.get("challenges") or [])

    async def aram_match_ids(self, puuid: str, region: str, count: int) -> List[str]:
        url = f"https://{regional_route(region)}.api.riotgames.com/lol/match/v5/matches/by-puuid/{puuid}/ids"
        params = {"queue": ARAM_QUEUE_ID, "type": "normal", "start": 0, "count": count}
        return list(await self._get(url, step="Match IDs", params=params))

    async def match_participants(self, match_id: str, region: str) -> List[str]:
        url = f"https://{regional_route(region)}.api.riotgames.com/lol/match/v5/matches/{match_id}"
        payload = await self._get(url, step="Match data")
        return list(payload["metadata"]["participants"])

    async def fetch_player(self, name: str, tagline: str, region: str) -> Player:
        """Resolve a Riot ID into a complete leaderboard entry."""

        puuid = await self.puuid_by_riot_id(name, tagline, region)
        icon_id = await self.profile_icon_id(puuid, region)
        score = await self.snowballs_hit(puuid, region)
        logger.debug("Fetched %s#%s: %s snowballs hit", name, tagline, score)
        return Player(
            puuid=puuid,
            name=name,
            tagline=tagline,
            snowballs_hit=score,
            profile_icon_id=icon_id,
            region=region,
        )
