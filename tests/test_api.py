"""Tests for the leaderboard HTTP API.

The limiters read time from a Mock clock so window expiry can be driven
without sleeping.
"""

from unittest.mock import Mock

import httpx
import pytest
from fastapi.testclient import TestClient

from snowfight.api.main import create_app
from snowfight.db.repository import upsert_player
from snowfight.db.session import session_scope
from snowfight.riot.base import Player
from snowfight.riot.client import RiotClient

START_MS = 1_700_000_000_000


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=START_MS)


@pytest.fixture
def client(test_settings, fake_riot, clock):
    app = create_app(
        test_settings,
        riot=RiotClient(transport=httpx.MockTransport(fake_riot.handler)),
        clock=clock,
    )
    with TestClient(app) as test_client:
        yield test_client


def _register(client: TestClient, ip: str = "1.2.3.4", **body):
    payload = {"summonerName": "Frosty", "tagLine": "EUW", "region": "euw1", **body}
    return client.post("/api/register-player", json=payload, headers={"x-forwarded-for": ip})


def test_health(client) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert "X-RateLimit-Remaining" not in resp.headers


def test_players_are_ranked_with_rate_limit_headers(client) -> None:
    with session_scope() as session:
        upsert_player(session, Player("p1", "Low", "NA1", 3, 29, "na1"))
        upsert_player(session, Player("p2", "High", "NA1", 90, 20000, "na1"))

    resp = client.get("/api/players", headers={"x-forwarded-for": "9.9.9.9, 10.0.0.1"})

    assert resp.status_code == 200
    body = resp.json()
    assert [player["name"] for player in body] == ["High", "Low"]
    assert body[0]["snowballsHit"] == 90
    assert body[0]["profileIconSrc"].startswith("https://ddragon.leagueoflegends.com/")
    assert body[1]["profileIconSrc"] == "/profile-icons/29.png"
    assert resp.headers["X-RateLimit-Remaining"] == "9"
    assert resp.headers["X-RateLimit-Reset"] == str(START_MS + 60_000)
    assert resp.headers["Retry-After"] == "60"


def test_players_rejected_after_ten_requests(client, clock) -> None:
    for _ in range(10):
        assert client.get("/api/players").status_code == 200

    clock.return_value = START_MS + 15_500
    resp = client.get("/api/players")

    assert resp.status_code == 429
    assert resp.json() == {"error": "Rate limit exceeded. Please try again later.", "retryAfter": 45}
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert resp.headers["X-RateLimit-Reset"] == str(START_MS + 60_000)
    assert resp.headers["Retry-After"] == "45"


def test_limit_is_per_client_and_resets(client, clock) -> None:
    for _ in range(10):
        client.get("/api/players", headers={"x-real-ip": "5.5.5.5"})
    assert client.get("/api/players", headers={"x-real-ip": "5.5.5.5"}).status_code == 429
    assert client.get("/api/players", headers={"x-real-ip": "6.6.6.6"}).status_code == 200

    clock.return_value = START_MS + 60_001
    assert client.get("/api/players", headers={"x-real-ip": "5.5.5.5"}).status_code == 200


def test_register_player(client, fake_riot) -> None:
    fake_riot.add_player("Frosty", "EUW", "puuid-frosty", score=512, icon=4000)

    resp = _register(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Player registered successfully"
    assert body["player"]["puuid"] == "puuid-frosty"
    assert body["player"]["snowballsHit"] == 512
    assert resp.headers["X-RateLimit-Remaining"] == "2"

    leaderboard = client.get("/api/players").json()
    assert [player["puuid"] for player in leaderboard] == ["puuid-frosty"]


def test_register_player_twice_updates_entry(client, fake_riot) -> None:
    fake_riot.add_player("Frosty", "EUW", "puuid-frosty", score=1)
    _register(client)
    fake_riot.scores["puuid-frosty"] = 20

    _register(client)

    leaderboard = client.get("/api/players").json()
    assert len(leaderboard) == 1
    assert leaderboard[0]["snowballsHit"] == 20


def test_register_player_stricter_limit(client, fake_riot) -> None:
    fake_riot.add_player("Frosty", "EUW", "puuid-frosty")

    statuses = [_register(client).status_code for _ in range(4)]

    assert statuses == [200, 200, 200, 429]
    assert client.get("/api/players", headers={"x-forwarded-for": "1.2.3.4"}).status_code == 200


@pytest.mark.parametrize(
    "body, message",
    [
        ({"summonerName": "  "}, "Summoner name is required"),
        ({"summonerName": None}, "Summoner name is required"),
        ({"tagLine": ""}, "Tag line is required"),
    ],
)
def test_register_player_validation(client, body: dict, message: str) -> None:
    resp = _register(client, **body)

    assert resp.status_code == 400
    assert resp.json() == {"error": message}


def test_register_player_rejects_unparseable_body(client) -> None:
    resp = client.post(
        "/api/register-player",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request data"}


@pytest.mark.parametrize(
    "fragment, status_code, message",
    [
        ("/riot/account/", 404, "PUUID error! Status: 404"),
        ("/lol/summoner/", 403, "Profile icon ID error! Status: 403"),
        ("/lol/challenges/", 503, "Challenge data error! Status: 503"),
    ],
)
def test_register_player_relays_upstream_status(client, fake_riot, fragment, status_code, message) -> None:
    fake_riot.add_player("Frosty", "EUW", "puuid-frosty")
    fake_riot.fail(fragment, status_code)

    resp = _register(client)

    assert resp.status_code == status_code
    assert resp.json() == {"error": message}


def test_api_routes_carry_security_headers(client) -> None:
    resp = client.get("/api/players")

    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-XSS-Protection"] == "1; mode=block"
    assert resp.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "X-Frame-Options" not in client.get("/health").headers


def test_rejections_are_recorded(client) -> None:
    for _ in range(11):
        client.get("/api/players", headers={"x-real-ip": "7.7.7.7"})

    events = client.app.state.telemetry.recent("rate_limit.rejected")
    assert [event.attributes["client"] for event in events] == ["7.7.7.7"]


def test_register_player_malformed_upstream_payload_is_json_500(client, fake_riot) -> None:
    fake_riot.add_player("Frosty", "EUW", "puuid-frosty")
    fake_riot.respond("/lol/challenges/", {"challenges": [None]})

    resp = _register(client)

    assert resp.status_code == 500
    assert list(resp.json()) == ["error"]
    assert client.get("/api/players").json() == []
