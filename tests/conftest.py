"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``snowfight`` import so the cached
settings never pick up a developer's ``.env`` values for the Riot key or the
database.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Tuple

_TEST_DIR = tempfile.mkdtemp(prefix="snowfight-tests-")
os.environ["RIOT_API_KEY"] = "test-riot-key"
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_TEST_DIR) / 'default.db'}"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest

from snowfight.core.config import Settings
from snowfight.db.session import configure_engine, init_db
from snowfight.riot.client import RiotClient


class FakeRiotAPI:
    """In-memory stand-in for the Riot endpoints, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.accounts: Dict[Tuple[str, str], str] = {}
        self.icons: Dict[str, int] = {}
        self.scores: Dict[str, int] = {}
        self.match_ids: Dict[str, List[str]] = {}
        self.matches: Dict[str, List[str]] = {}
        self.failures: Dict[str, int] = {}
        self.bodies: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []

    def add_player(self, name: str, tagline: str, puuid: str, *, score: int = 0, icon: int = 1) -> None:
        self.accounts[(name, tagline)] = puuid
        self.icons[puuid] = icon
        self.scores[puuid] = score

    def fail(self, fragment: str, status_code: int) -> None:
        """Answer ``status_code`` for any request whose path contains ``fragment``."""
        self.failures[fragment] = status_code

    def respond(self, fragment: str, body: Any) -> None:
        """Answer 200 with ``body`` for any request whose path contains ``fragment``."""
        self.bodies[fragment] = body

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for fragment, status_code in self.failures.items():
            if fragment in path:
                return httpx.Response(status_code, text="forced failure")
        for fragment, body in self.bodies.items():
            if fragment in path:
                return httpx.Response(200, json=body)

        parts = path.strip("/").split("/")
        if path.startswith("/riot/account/v1/accounts/by-riot-id/"):
            puuid = self.accounts.get((parts[-2], parts[-1]))
            if puuid is None:
                return httpx.Response(404, json={"status": {"message": "Data not found"}})
            return httpx.Response(200, json={"puuid": puuid, "gameName": parts[-2], "tagLine": parts[-1]})
        if path.startswith("/riot/account/v1/accounts/by-puuid/"):
            for (name, tagline), puuid in self.accounts.items():
                if puuid == parts[-1]:
                    return httpx.Response(200, json={"puuid": puuid, "gameName": name, "tagLine": tagline})
            return httpx.Response(404)
        if path.startswith("/lol/summoner/v4/summoners/by-puuid/"):
            if parts[-1] not in self.icons:
                return httpx.Response(404)
            return httpx.Response(200, json={"puuid": parts[-1], "profileIconId": self.icons[parts[-1]]})
        if path.startswith("/lol/challenges/v1/player-data/"):
            if parts[-1] not in self.scores:
                return httpx.Response(404)
            challenges = [
                {"challengeId": 101000, "value": 7},
                {"challengeId": 101203, "value": self.scores[parts[-1]]},
            ]
            return httpx.Response(200, json={"challenges": challenges})
        if path.startswith("/lol/match/v5/matches/by-puuid/"):
            count = int(request.url.params.get("count", 20))
            return httpx.Response(200, json=self.match_ids.get(parts[-2], [])[:count])
        if path.startswith("/lol/match/v5/matches/"):
            if parts[-1] not in self.matches:
                return httpx.Response(404)
            return httpx.Response(200, json={"metadata": {"participants": self.matches[parts[-1]]}})
        return httpx.Response(404)


@pytest.fixture
def fake_riot() -> FakeRiotAPI:
    return FakeRiotAPI()


@pytest.fixture
def riot_client(fake_riot: FakeRiotAPI) -> RiotClient:
    return RiotClient(transport=httpx.MockTransport(fake_riot.handler))


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'leaderboard.db'}"


@pytest.fixture
def database(database_url: str) -> str:
    configure_engine(database_url)
    init_db()
    return database_url


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    return Settings(database_url=database_url, riot_api_key="test-riot-key", log_level="WARNING")
