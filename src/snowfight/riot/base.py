"""Shared types for the Riot API client."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable

SNOWBALLS_HIT_CHALLENGE_ID = 101203
ARAM_QUEUE_ID = 450

_REGIONAL_ROUTES: Dict[str, str] = {
    "na1": "americas",
    "br1": "americas",
    "la1": "americas",
    "la2": "americas",
    "jp1": "asia",
    "kr": "asia",
    "me1": "europe",
    "eun1": "europe",
    "euw1": "europe",
    "tr1": "europe",
    "ru": "europe",
}
DEFAULT_REGIONAL_ROUTE = "americas"


def regional_route(platform: str) -> str:
    """Map a platform id such as ``euw1`` to its regional routing value."""

    return _REGIONAL_ROUTES.get(platform, DEFAULT_REGIONAL_ROUTE)


@dataclass(slots=True)
class Player:
    """Normalized leaderboard entry."""

    puuid: str
    name: str
    tagline: str
    snowballs_hit: int
    profile_icon_id: int
    region: str

    @property
    def riot_id(self) -> str:
        return f"{self.name}#{self.tagline}"


class RiotAPIError(RuntimeError):
    """Raised when the Riot API answers with a non-success status."""

    def __init__(self, step: str, status_code: int, detail: str = "") -> None:
        self.step = step
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{step} error! Status: {status_code}")

    @property
    def bucket(self) -> str:
        if self.status_code == 404:
            return "not_found"
        if self.status_code == 429:
            return "rate_limited"
        if 400 <= self.status_code < 500:
            return "client_error"
        return "server_error"


def snowballs_hit(challenges: Iterable[Dict[str, Any]]) -> int:
    for challenge in challenges:
        if challenge.get("challengeId") == SNOWBALLS_HIT_CHALLENGE_ID:
            value = challenge.get("value")
            return int(value) if value is not None else 0
    return 0
