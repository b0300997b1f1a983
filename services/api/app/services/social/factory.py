from __future__ import annotations

from functools import lru_cache

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.social.memory_store import InMemorySocialStore
from app.services.social.side_effects import SideEffectRunner
from app.services.social.sql_store import SqlSocialStore
from app.services.social.store import SocialStore
from app.services.social.throttle import ActionThrottle


@lru_cache
def get_store() -> SocialStore:
    if settings.social_store == "sql":
        return SqlSocialStore(SessionLocal, in_batch_size=settings.social_query_batch_size)
    if settings.social_store == "memory":
        return InMemorySocialStore()
    raise ValueError(f"Unknown social store: {settings.social_store}")


@lru_cache
def get_side_effects() -> SideEffectRunner:
    return SideEffectRunner(max_pending=settings.side_effect_max_pending)


@lru_cache
def get_throttle() -> ActionThrottle:
    return ActionThrottle(
        interval_secs=settings.side_effect_throttle_secs,
        max_entries=settings.throttle_max_entries,
    )
