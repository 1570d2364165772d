"""Sliding-window rate limiting per client IP."""

from __future__ import annotations

import logging
import time

from fastapi import Request

from backend.api.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "ratelimit:"


def client_ip(request: Request) -> str:
    """Return the caller's IP, preferring the first ``X-Forwarded-For`` hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",", 1)[0].strip()
        if first:
            return first
    if request.client is not None:
        return request.client.host
    return "unknown"


def allow_request(
    store: KeyValueStore,
    ip: str,
    *,
    window_s: float,
    max_requests: int,
    now: float | None = None,
) -> bool:
    """Record a request from *ip* and return whether it is within the limit.

    Rejected requests are not recorded, so a blocked client regains access
    once its oldest accepted request leaves the window.
    """
    now = time.monotonic() if now is None else now
    key = f"{_KEY_PREFIX}{ip}"
    recent = [t for t in (store.get(key) or []) if now - t < window_s]

    if len(recent) >= max_requests:
        if recent:
            store.put(key, recent, ttl_s=window_s - (now - recent[-1]))
        else:
            store.delete(key)
        logger.warning("Rate limit exceeded for %s (%d in %.0fs)", ip, len(recent), window_s)
        return False

    recent.append(now)
    # The entry is dead once its newest request leaves the window
    store.put(key, recent, ttl_s=window_s)
    return True
