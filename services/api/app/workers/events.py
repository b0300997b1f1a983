from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from app.core.redis_client import get_redis


def social_channel(book_key: str) -> str:
    return f"social:{book_key}"


def publish_social_changed(*, book_key: str, payload: dict[str, Any]) -> bool:
    """Announce a like/comment change for a book key (best effort).

    Returns False when Redis is not configured or reachable.
    """
    r = get_redis()
    if r is None:
        return False
    body = {
        "type": "social_changed",
        "book_key": book_key,
        "payload": payload,
        "ts": datetime.now(timezone.utc).isoformat(),
    }
    r.publish(social_channel(book_key), json.dumps(body))
    return True
