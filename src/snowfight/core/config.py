"""Application configuration for the Snowfight leaderboard."""
from __future__ import annotations

from functools import lru_cache
import json
import logging
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


logger = logging.getLogger("snowfight.config")


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="Snowfight Leaderboard", description="Human readable application name.")
    environment: str = Field(default="development", description="Environment name for telemetry tagging.")
    riot_api_key: str = Field(default="", description="Riot Games API key sent as X-Riot-Token.")
    default_timeout_seconds: float = Field(default=10.0, description="HTTP timeout used for outbound Riot API requests.")
    max_connections: int = Field(default=10, description="Maximum concurrent connections per Riot host.")
    user_agent: str = Field(
        default="snowfight-leaderboard/1.0",
        description="User agent string sent to the Riot API.",
    )
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="CORS origins allowed to access the API, as a JSON list or comma-separated string.",
    )
    telemetry_endpoint: str | None = Field(
        default=None,
        description="Optional external telemetry collector endpoint for forwarding events.",
    )
    telemetry_buffer_size: int = Field(
        default=1000,
        ge=1,
        description="Events kept in memory when no telemetry endpoint is configured.",
    )
    database_url: str = Field(
        default="sqlite:///./snowfight.db",
        description="Database connection string used for persisting leaderboard entries.",
    )
    log_level: str = Field(default="INFO", description="Application log level.")

    @field_validator("allowed_origins", mode="before")
    def _split_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            if value.lstrip().startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("log_level")
    def _normalise_level(cls, value: str) -> str:
        return value.upper()


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    settings = Settings()
    if not settings.riot_api_key:
        logger.warning("RIOT_API_KEY is not set; Riot API calls will be rejected upstream")
    return settings
