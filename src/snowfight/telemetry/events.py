"""Telemetry event collection for the leaderboard."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Optional

import httpx

from ..core.config import Settings, get_settings

logger = logging.getLogger("snowfight.telemetry")


@dataclass(slots=True)
class TelemetryEvent:
    """Represents a single telemetry data point."""

    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=lambda: time.time())


class TelemetryClient:
    """Telemetry sink that forwards to a collector or keeps a bounded history.

    Without a configured endpoint the most recent events are retained in
    memory and older ones are dropped.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._queue: Optional[asyncio.Queue[TelemetryEvent]] = None
        self._recent: Deque[TelemetryEvent] = deque(maxlen=self._settings.telemetry_buffer_size)
        self._sender_task: Optional[asyncio.Task[None]] = None

    @property
    def forwarding(self) -> bool:
        return self._sender_task is not None

    async def start(self) -> None:
        if self._settings.telemetry_endpoint and self._sender_task is None:
            self._queue = asyncio.Queue(maxsize=self._settings.telemetry_buffer_size)
            self._sender_task = asyncio.create_task(self._forward_events())

    async def stop(self) -> None:
        if self._sender_task:
            self._sender_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sender_task
            self._sender_task = None
            self._queue = None

    async def record(self, event: TelemetryEvent) -> None:
        self._recent.append(event)
        if self._queue is None:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Telemetry queue full; dropping %s", event.name)

    def recent(self, name: Optional[str] = None) -> List[TelemetryEvent]:
        return [event for event in self._recent if name is None or event.name == name]

    async def _forward_events(self) -> None:
        assert self._settings.telemetry_endpoint is not None
        assert self._queue is not None
        async with httpx.AsyncClient(timeout=self._settings.default_timeout_seconds) as client:
            while True:
                event = await self._queue.get()
                payload = json.dumps(asdict(event))
                try:
                    await client.post(str(self._settings.telemetry_endpoint), content=payload)
                except httpx.HTTPError as exc:
                    logger.debug("Telemetry forward failed: %s", exc)
