"""Simple in-memory rate limiting."""
from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

REGISTER_PLAYER_WINDOW_MS = 60_000
REGISTER_PLAYER_MAX_REQUESTS = 3
GENERAL_API_WINDOW_MS = 60_000
GENERAL_API_MAX_REQUESTS = 10

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class RateLimitEntry:
    """Request count for one identifier within its current window."""

    count: int
    reset_time: int


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a single admission check.

    ``reset_time`` is the epoch millisecond at which the identifier's window
    closes.
    """

    allowed: bool
    remaining: int
    reset_time: int


class RateLimiter:
    """Fixed window rate limiter with per-identifier tracking.

    Each identifier gets a window of ``window_ms`` starting at its first
    request. Expired entries are evicted lazily at the start of every check.
    A burst straddling a window boundary can admit up to twice
    ``max_requests``.
    """

    def __init__(
        self,
        *,
        window_ms: int = 60_000,
        max_requests: int = 5,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock
        self._requests: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._clock()

    def _cleanup(self, now: int) -> None:
        expired = [key for key, entry in self._requests.items() if now > entry.reset_time]
        for key in expired:
            del self._requests[key]

    def _open_window(self, identifier: str, now: int) -> RateLimitDecision:
        entry = RateLimitEntry(count=1, reset_time=now + self.window_ms)
        self._requests[identifier] = entry
        return RateLimitDecision(allowed=True, remaining=self.max_requests - 1, reset_time=entry.reset_time)

    def is_allowed(self, identifier: str) -> RateLimitDecision:
        """Record a request for ``identifier`` and decide whether to admit it."""

        with self._lock:
            now = self._clock()
            self._cleanup(now)

            entry = self._requests.get(identifier)
            if entry is None or now > entry.reset_time:
                return self._open_window(identifier, now)

            if entry.count >= self.max_requests:
                return RateLimitDecision(allowed=False, remaining=0, reset_time=entry.reset_time)

            entry.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - entry.count,
                reset_time=entry.reset_time,
            )

    def entry_for(self, identifier: str) -> RateLimitEntry | None:
        with self._lock:
            return self._requests.get(identifier)

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)


def register_player_limiter(clock: Callable[[], int] = _now_ms) -> RateLimiter:
    return RateLimiter(window_ms=REGISTER_PLAYER_WINDOW_MS, max_requests=REGISTER_PLAYER_MAX_REQUESTS, clock=clock)


def general_api_limiter(clock: Callable[[], int] = _now_ms) -> RateLimiter:
    return RateLimiter(window_ms=GENERAL_API_WINDOW_MS, max_requests=GENERAL_API_MAX_REQUESTS, clock=clock)


def retry_after_seconds(reset_time: int, now: int) -> int:
    """Whole seconds until ``reset_time``, rounded up."""

    return math.ceil((reset_time - now) / 1000)


def rate_limit_headers(decision: RateLimitDecision, now: int) -> Dict[str, str]:
    return {
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_time),
        "Retry-After": str(retry_after_seconds(decision.reset_time, now)),
    }


def rejection_body(decision: RateLimitDecision, now: int) -> Dict[str, object]:
    return {"error": RATE_LIMIT_MESSAGE, "retryAfter": retry_after_seconds(decision.reset_time, now)}
