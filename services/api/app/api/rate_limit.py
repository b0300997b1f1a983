from __future__ import annotations

import logging
import time
from typing import Callable, Optional, cast

from app.api.deps import get_optional_user_id
from app.core.redis_client import get_redis
from fastapi import Depends, HTTPException, Request
from redis import Redis, RedisError

logger = logging.getLogger(__name__)


def _client_id(request: Request, user_id: Optional[str]) -> str:
    if user_id:
        return f"user:{user_id}"
    return f"ip:{request.client.host if request.client else 'anon'}"


def rate_limiter(
    scope: str,
    *,
    limit: int,
    window_seconds: int,
) -> Callable[..., None]:
    """Fixed-window limiter on Redis INCR + EXPIRE, per user or client address.

    Anonymous reads are limited too, so the bucket falls back to the client
    address. If Redis is unavailable the limiter is a no-op (fail open).
    """

    def _dep(
        request: Request, user_id: Optional[str] = Depends(get_optional_user_id)
    ) -> None:
        r = get_redis()
        if r is None:
            return

        now = int(time.time())
        bucket = now // window_seconds
        key = f"rl:{scope}:{_client_id(request, user_id)}:{bucket}"

        try:
            pipe = cast(Redis, r).pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds)
            count = int(pipe.execute()[0])
        except RedisError as exc:
            logger.warning("rate limiter skipped", extra={"scope": scope, "error": str(exc)})
            return

        if count > limit:
            retry_after = max(1, window_seconds - (now % window_seconds))
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

    return _dep
