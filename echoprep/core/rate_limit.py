"""
Simple in-memory rate limiter for auth endpoints.
"""
import logging
import threading
import time
from typing import Dict, List
from fastapi import Request, HTTPException, status

logger = logging.getLogger(__name__)

# {"<scope>:<ip>": [timestamps]}
rate_limit_store: Dict[str, List[float]] = {}
_store_lock = threading.Lock()
_last_sweep = 0.0


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # first hop is the client
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def _sweep_stale_keys(now: float, cutoff: float, window_seconds: int) -> None:
    """Drop keys with no timestamp inside the window. Runs at most once per window; caller holds the lock."""
    global _last_sweep
    if now - _last_sweep < window_seconds:
        return
    _last_sweep = now
    for key in [k for k, stamps in rate_limit_store.items() if not stamps or stamps[-1] <= cutoff]:
        del rate_limit_store[key]


def check_rate_limit(request: Request, scope: str, max_requests: int = 10, window_seconds: int = 60) -> None:
    """
    Sliding-window limit per client IP and scope.

    Raises:
        HTTPException: 429 if rate limit exceeded
    """
    key = f"{scope}:{get_client_ip(request)}"
    now = time.time()
    cutoff = now - window_seconds

    with _store_lock:
        _sweep_stale_keys(now, cutoff, window_seconds)

        timestamps = [ts for ts in rate_limit_store.get(key, []) if ts > cutoff]
        request_count = len(timestamps)

        if request_count >= max_requests:
            rate_limit_store[key] = timestamps
            logger.warning(f"Rate limit exceeded for {key} ({request_count} requests in {window_seconds}s)")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds."
            )

        timestamps.append(now)
        rate_limit_store[key] = timestamps


def rate_limit(scope: str, max_requests: int = 10, window_seconds: int = 60):
    """Route dependency wrapping check_rate_limit."""
    def dependency(request: Request) -> None:
        check_rate_limit(request, scope, max_requests, window_seconds)
    return dependency
