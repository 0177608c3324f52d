"""Per-client request limits for the API and the credential endpoints."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict, Tuple

from fastapi import Request

from salon_api.core.errors import TooManyRequestsError
from salon_api.core.settings import get_app_settings

# Idle keys are swept at most this often (seconds).
SWEEP_INTERVAL = 60.0


class InMemoryRateLimiter:
    """
    Sliding-window limiter keyed by client.

    A key keeps the timestamps of its requests inside the window. Keys whose
    timestamps have all aged out are dropped, both when they are hit again and
    by a periodic sweep, so idle clients do not accumulate.
    """

    def __init__(self) -> None:
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> Tuple[bool, int]:
        """Record a hit for key; returns (allowed, retry_after_seconds)."""
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            if now - self._last_sweep >= SWEEP_INTERVAL:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.get(key)
            if hits is not None:
                while hits and hits[0] <= cutoff:
                    hits.popleft()
                if not hits:
                    del self._hits[key]
                    hits = None

            if hits is not None and len(hits) >= max_requests:
                return False, max(1, int(hits[0] + window_seconds - now))

            self._hits.setdefault(key, deque()).append(now)
        return True, 0

    def _sweep(self, cutoff: float) -> None:
        idle = [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for k in idle:
            del self._hits[k]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._hits)


api_limiter = InMemoryRateLimiter()
auth_limiter = InMemoryRateLimiter()


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# PUBLIC_INTERFACE
async def api_rate_limit(request: Request) -> None:
    """Limit every /api/v1 request per client address."""
    limit = get_app_settings().RATE_LIMIT_API_PER_MINUTE
    allowed, retry_after = api_limiter.allow(_client_key(request), limit, 60)
    if not allowed:
        raise TooManyRequestsError(retry_after)


# PUBLIC_INTERFACE
async def auth_rate_limit(request: Request) -> None:
    """Stricter limit for credential endpoints (login, register), keyed per client and path."""
    limit = get_app_settings().RATE_LIMIT_AUTH_PER_MINUTE
    key = f"{_client_key(request)}:{request.url.path}"
    allowed, retry_after = auth_limiter.allow(key, limit, 60)
    if not allowed:
        raise TooManyRequestsError(retry_after)
