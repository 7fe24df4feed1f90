"""FastAPI application entrypoint for the Snowfight leaderboard."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings, get_settings
from ..core.logging import setup_logging
from ..db.repository import list_leaderboard, upsert_player
from ..db.session import configure_engine, init_db, session_scope
from ..riot.base import RiotAPIError
from ..riot.client import RESPONSE_ERRORS, RiotClient
from ..riot.icons import profile_icon_src
from ..security.client_identity import identify
from ..security.rate_limiter import (
    RateLimitDecision,
    RateLimiter,
    general_api_limiter,
    rate_limit_headers,
    register_player_limiter,
    rejection_body,
)
from ..telemetry.events import TelemetryClient, TelemetryEvent

logger = logging.getLogger("snowfight.api")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class RegisterPlayerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summoner_name: Optional[str] = Field(None, alias="summonerName")
    tag_line: Optional[str] = Field(None, alias="tagLine")
    region: str = "na1"


class RateLimitExceeded(Exception):
    def __init__(self, decision: RateLimitDecision, now: int) -> None:
        super().__init__("Rate limit exceeded")
        self.decision = decision
        self.now = now


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def enforce_rate_limit(limiter_attr: str) -> Callable:
    """Build a dependency that admits the request through ``app.state.<limiter_attr>``."""

    async def _enforce(request: Request, response: Response) -> RateLimitDecision:
        limiter: RateLimiter = getattr(request.app.state, limiter_attr)
        identifier = identify(request.headers)
        decision = limiter.is_allowed(identifier)
        now = limiter.now()
        if not decision.allowed:
            raise RateLimitExceeded(decision, now)
        response.headers.update(rate_limit_headers(decision, now))
        return decision

    return _enforce


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    identifier = identify(request.headers)
    logger.warning("Rate limit exceeded for %s on %s", identifier, request.url.path)
    telemetry: TelemetryClient = request.app.state.telemetry
    await telemetry.record(
        TelemetryEvent(name="rate_limit.rejected", attributes={"client": identifier, "path": request.url.path})
    )
    return JSONResponse(
        status_code=429,
        content=rejection_body(exc.decision, exc.now),
        headers=rate_limit_headers(exc.decision, exc.now),
    )


async def invalid_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return _error(400, "Invalid request data")


async def api_request_middleware(request: Request, call_next) -> Response:
    if not request.url.path.startswith("/api/"):
        return await call_next(request)
    logger.info("%s %s - %s", request.method, request.url.path, identify(request.headers))
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response


def create_app(
    settings: Optional[Settings] = None,
    *,
    riot: Optional[RiotClient] = None,
    clock: Optional[Callable[[], int]] = None,
) -> FastAPI:
    """Build the application and the rate limiters it owns."""

    settings = settings or get_settings()
    setup_logging(settings.log_level)
    configure_engine(settings.database_url)
    telemetry = TelemetryClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initialising %s", settings.app_name)
        await asyncio.to_thread(init_db)
        await telemetry.start()
        await telemetry.record(TelemetryEvent(name="app.startup", attributes={"environment": settings.environment}))
        yield
        logger.info("Shutting down %s", settings.app_name)
        await telemetry.record(TelemetryEvent(name="app.shutdown"))
        await telemetry.stop()

    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(api_request_middleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, invalid_request_handler)

    limiter_kwargs = {"clock": clock} if clock is not None else {}
    app.state.register_limiter = register_player_limiter(**limiter_kwargs)
    app.state.general_limiter = general_api_limiter(**limiter_kwargs)
    app.state.riot = riot or RiotClient()
    app.state.telemetry = telemetry

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route(
        "/api/players",
        get_players,
        methods=["GET"],
        dependencies=[Depends(enforce_rate_limit("general_limiter"))],
    )
    app.add_api_route(
        "/api/register-player",
        register_player,
        methods=["POST"],
        dependencies=[Depends(enforce_rate_limit("register_limiter"))],
    )
    return app


async def health() -> dict:
    return {"status": "ok"}


async def get_players():
    def _fetch() -> List[dict]:
        with session_scope() as session:
            return [
                {**record.to_api(), "profileIconSrc": profile_icon_src(record.profile_icon_id)}
                for record in list_leaderboard(session)
            ]

    try:
        players = await asyncio.to_thread(_fetch)
    except SQLAlchemyError:
        logger.exception("Database error while loading players")
        return _error(500, "Failed to load players data")
    logger.debug("Served %s players", len(players))
    return players


async def register_player(request: Request, payload: RegisterPlayerRequest):
    if not (payload.summoner_name or "").strip():
        return _error(400, "Summoner name is required")
    if not (payload.tag_line or "").strip():
        return _error(400, "Tag line is required")

    riot: RiotClient = request.app.state.riot
    try:
        player = await riot.fetch_player(payload.summoner_name, payload.tag_line, payload.region)
    except RiotAPIError as exc:
        logger.warning(
            "Registration lookup failed for %s#%s: %s (%s)",
            payload.summoner_name,
            payload.tag_line,
            exc,
            exc.bucket,
        )
        return _error(exc.status_code, str(exc))
    except RESPONSE_ERRORS as exc:
        logger.exception("Riot API error while registering %s#%s", payload.summoner_name, payload.tag_line)
        return _error(500, str(exc) or "An unexpected error occurred")

    def _store() -> dict:
        with session_scope() as session:
            return upsert_player(session, player).to_api()

    try:
        stored = await asyncio.to_thread(_store)
    except SQLAlchemyError as exc:
        logger.exception("Database error while registering %s", player.riot_id)
        return _error(500, str(exc))

    logger.info("Registered %s with %s snowballs hit", player.riot_id, player.snowballs_hit)
    telemetry: TelemetryClient = request.app.state.telemetry
    await telemetry.record(
        TelemetryEvent(name="player.registered", attributes={"puuid": player.puuid, "region": player.region})
    )
    return {"success": True, "message": "Player registered successfully", "player": stored}


app = create_app()
