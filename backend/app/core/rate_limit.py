from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.redis_client import get_redis


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    key: str
    limit: int
    window_seconds: int
    remaining: int


def _client_ip(request: Request) -> str:
    if bool(settings.trust_proxy_headers):
        xri = str(request.headers.get("x-real-ip") or "").strip()
        if xri:
            return xri
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _subject(request: Request) -> str:
    # Authenticated callers are keyed by token so users sharing an address do not
    # throttle each other.
    auth = str(request.headers.get("authorization") or "").strip()
    if auth:
        return "tok:" + hashlib.sha256(auth.encode("utf-8")).hexdigest()[:16]
    return f"ip:{_client_ip(request)}"


def rate_limit(*, key_prefix: str, limit: int, window_seconds: int):
    """Fixed-window limiter. Fails open when Redis is unavailable."""

    async def _dep(request: Request) -> RateLimit:
        key = f"rl:{key_prefix}:{_subject(request)}"
        r = get_redis()
        try:
            current = int(r.incr(key))
            if current == 1:
                r.expire(key, int(window_seconds))
        except RedisError:
            log.warning("rate limiter unavailable, allowing request key=%s", key)
            return RateLimit(key=key, limit=limit, window_seconds=window_seconds, remaining=limit)

        if current > int(limit):
            ttl = r.ttl(key)
            retry_after = int(ttl) if ttl and ttl > 0 else int(window_seconds)
            raise HTTPException(
                status_code=429,
                detail="rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

        return RateLimit(key=key, limit=limit, window_seconds=window_seconds, remaining=max(0, limit - current))

    return Depends(_dep)
