from __future__ import annotations

import logging
from functools import lru_cache

import redis
from app.core.config import settings
from redis import Redis

logger = logging.getLogger(__name__)

# Redis only backs best-effort features; a dead server must not stall requests.
_SOCKET_TIMEOUT_SECS = 0.5


@lru_cache
def get_redis() -> Redis | None:
    """Shared client for rate limiting and social-change events, or None if unreachable."""
    try:
        client: Redis = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=_SOCKET_TIMEOUT_SECS,
            socket_timeout=_SOCKET_TIMEOUT_SECS,
        )
        client.ping()
        return client
    except redis.RedisError as exc:
        logger.warning("Redis unavailable; rate limiting and social events disabled: %s", exc)
        return None
