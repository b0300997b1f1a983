from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from app.domain.book_key import UNKNOWN_KEY, BookInput, coerce_book, expand, resolve
from app.domain.normalize import normalize_isbn
from app.schemas.books import BookLike
from app.services.social.errors import DuplicateLike, InvalidIdentity, NotAuthenticated
from app.services.social.side_effects import SideEffectRunner
from app.services.social.store import (
    LIKE_EVENT,
    ActivityEventIn,
    BookCacheEntry,
    SocialStore,
)
from app.services.social.throttle import ActionThrottle

logger = logging.getLogger(__name__)

Notifier = Callable[..., Any]


@dataclass(frozen=True)
class ToggleResult:
    book_key: str
    liked: bool
    likes_delta: int
    # True only when this call inserted the like row.
    created: bool = False

    def apply(self, likes: int) -> int:
        return max(0, likes + self.likes_delta)


def book_meta(book: BookInput) -> BookLike | None:
    if book is None or isinstance(book, str):
        return None
    return coerce_book(book)


def require_identity(user_id: str | None, book: BookInput) -> tuple[str, str]:
    """Check the write preconditions; return ``(user_id, canonical_key)``. No I/O."""
    if not user_id:
        raise NotAuthenticated("user is not authenticated")
    key = resolve(book)
    if key == UNKNOWN_KEY:
        raise InvalidIdentity("book has no usable identity")
    return user_id, key


class LikeToggleEngine:
    """Flip a user's like on a book against verified store state.

    Sequence per call: guard (no I/O) -> read the user's active likes across
    every key spelling -> delete them, or insert one row under the canonical
    key. A uniqueness rejection on insert means a concurrent request already
    liked the book and is reported as liked. Feed/cache side effects are
    scheduled on ``side_effects`` and never affect the result.
    """

    def __init__(
        self,
        store: SocialStore,
        *,
        side_effects: SideEffectRunner | None = None,
        throttle: ActionThrottle | None = None,
        soft_delete: bool = True,
        notifier: Notifier | None = None,
    ):
        self.store = store
        self.side_effects = side_effects or SideEffectRunner()
        self.throttle = throttle or ActionThrottle()
        self.soft_delete = soft_delete
        self.notifier = notifier

    async def toggle(self, user_id: str | None, book: BookInput) -> ToggleResult:
        user_id, key = require_identity(user_id, book)
        candidates = expand(book) | expand(key)

        existing = await self.store.select_likes(candidates, user_id=user_id, active_only=True)

        if existing:
            removed = await self.store.delete_likes(
                user_id=user_id,
                book_keys={r.book_key for r in existing},
                soft=self.soft_delete,
            )
            result = ToggleResult(book_key=key, liked=False, likes_delta=-1 if removed else 0)
            self._after_unlike(user_id, candidates)
        else:
            try:
                await self.store.insert_like(user_id=user_id, book_key=key)
            except DuplicateLike:
                logger.info("like already recorded", extra={"book_key": key, "user_id": user_id})
                result = ToggleResult(book_key=key, liked=True, likes_delta=0)
            else:
                result = ToggleResult(book_key=key, liked=True, likes_delta=1, created=True)
                self._after_like(user_id, key, book_meta(book))

        self._notify(user_id, result)
        return result

    def _after_unlike(self, user_id: str, candidates: frozenset[str]) -> None:
        async def remove_feed_event() -> None:
            await self.store.delete_activity_events(
                actor_id=user_id, event_type=LIKE_EVENT, book_keys=candidates
            )

        self.side_effects.schedule("activity_event.delete", remove_feed_event)

    def _after_like(self, user_id: str, key: str, meta: BookLike | None) -> None:
        if not self.throttle.allow(f"{key}:like"):
            logger.debug("like side effects throttled", extra={"book_key": key})
            return

        if meta is not None and meta.title:
            entry = BookCacheEntry(
                book_key=key,
                title=meta.title,
                author=meta.author,
                cover_url=meta.cover_url,
                isbn=normalize_isbn(meta.isbn13 or meta.isbn10 or meta.isbn),
                source=meta.source,
            )

            async def upsert_cache() -> None:
                await self.store.upsert_book_cache(entry)

            self.side_effects.schedule("books_cache.upsert", upsert_cache)

        event = ActivityEventIn(
            actor_id=user_id,
            event_type=LIKE_EVENT,
            book_key=key,
            book_title=meta.title if meta else None,
            book_author=meta.author if meta else None,
            book_cover_url=meta.cover_url if meta else None,
        )

        async def insert_feed_event() -> None:
            await self.store.insert_activity_event(event)

        self.side_effects.schedule("activity_event.insert", insert_feed_event)

    def _notify(self, user_id: str, result: ToggleResult) -> None:
        notifier = self.notifier
        if notifier is None or result.likes_delta == 0:
            return

        payload = {"action": "like" if result.liked else "unlike", "user_id": user_id}

        async def publish() -> None:
            # Notifiers do blocking network I/O (Redis publish).
            await asyncio.to_thread(notifier, book_key=result.book_key, payload=payload)

        self.side_effects.schedule("social_changed.publish", publish)
