"""HTTP utilities for talking to the Riot API."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from .config import get_settings


@asynccontextmanager
async def get_async_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> AsyncIterator[httpx.AsyncClient]:
    settings = get_settings()
    limits = httpx.Limits(max_connections=settings.max_connections, max_keepalive_connections=settings.max_connections)
    headers = {"User-Agent": settings.user_agent, "X-Riot-Token": settings.riot_api_key}
    async with httpx.AsyncClient(
        timeout=settings.default_timeout_seconds,
        limits=limits,
        headers=headers,
        transport=transport,
    ) as client:
        yield client
