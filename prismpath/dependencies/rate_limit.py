"""
Per-client fixed-window rate limiting for the AI endpoints.

Counters live in process memory; each worker process limits independently.
"""
from fastapi import HTTPException, Request, Response
from datetime import datetime, timezone
from typing import Callable, Dict, Tuple
import logging
import math
import threading
import time

from prismpath.config import get_settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    def __init__(self, limit: int, window: float = WINDOW_SECONDS, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window = window
        self.clock = clock
        # client -> (window start, request count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> Dict:
        """Count one request for ``key`` and report whether it is within the limit."""
        with self._lock:
            now = self.clock()
            self._cleanup(now)

            started, count = self._windows.get(key, (now, 0))
            if now - started > self.window:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)

        reset_at = started + self.window
        return {
            "allowed": count <= self.limit,
            "limit": self.limit,
            "remaining": max(0, self.limit - count),
            "reset_at": reset_at,
            "retry_after": max(0, math.ceil(reset_at - now)),
        }

    def reset(self):
        with self._lock:
            self._windows.clear()

    def _cleanup(self, now: float):
        expired = [k for k, (started, _) in self._windows.items() if now - started > self.window]
        for key in expired:
            del self._windows[key]


def rate_limit_headers(result: Dict) -> Dict[str, str]:
    reset = datetime.fromtimestamp(result["reset_at"], tz=timezone.utc).isoformat()
    return {
        "X-RateLimit-Limit": str(result["limit"]),
        "X-RateLimit-Remaining": str(result["remaining"]),
        "X-RateLimit-Reset": reset,
    }


def rate_limited(limiter: RateLimiter):
    """Dependency enforcing ``limiter`` on the route it is attached to."""

    async def dependency(request: Request, response: Response):
        client_ip = get_client_ip(request)
        result = limiter.hit(client_ip)
        headers = rate_limit_headers(result)

        if not result["allowed"]:
            logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "Too Many Requests",
                    "message": "Rate limit exceeded. Please try again later.",
                    "retry_after": result["retry_after"],
                },
                headers={**headers, "X-RateLimit-Remaining": "0", "Retry-After": str(result["retry_after"])},
            )

        for name, value in headers.items():
            response.headers[name] = value

    return dependency


_settings = get_settings()
generate_limiter = RateLimiter(_settings.ai_rate_limit)
transition_limiter = RateLimiter(_settings.transition_rate_limit)
