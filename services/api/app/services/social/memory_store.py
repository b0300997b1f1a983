from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Collection
from uuid import uuid4

from app.services.social.errors import DuplicateLike
from app.services.social.store import (
    ActivityEventIn,
    BookCacheEntry,
    CommentRow,
    LikeRow,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _folded(book_keys: Collection[str]) -> set[str]:
    return {k.lower() for k in book_keys if k}


class InMemorySocialStore:
    """Process-local SocialStore.

    Mirrors the SQL store's rules (case-insensitive key matching, active-like
    uniqueness, soft delete) and
    yields to the event loop on every call so concurrent callers interleave
    the way they would against a remote store.
    """

    name = "memory"

    def __init__(self) -> None:
        self.likes: list[LikeRow] = []
        self.comments: list[CommentRow] = []
        self.book_cache: dict[str, BookCacheEntry] = {}
        self.activity_events: list[ActivityEventIn] = []

    async def select_likes(
        self,
        book_keys: Collection[str],
        *,
        user_id: str | None = None,
        active_only: bool = True,
    ) -> list[LikeRow]:
        await asyncio.sleep(0)
        wanted = _folded(book_keys)
        return [
            r
            for r in self.likes
            if r.book_key.lower() in wanted
            and (user_id is None or r.user_id == user_id)
            and (not active_only or r.deleted_at is None)
        ]

    async def select_comments(self, book_keys: Collection[str]) -> list[CommentRow]:
        await asyncio.sleep(0)
        wanted = _folded(book_keys)
        return [c for c in self.comments if c.book_key.lower() in wanted]

    async def insert_like(self, *, user_id: str, book_key: str) -> LikeRow:
        await asyncio.sleep(0)
        for r in self.likes:
            if (
                r.user_id == user_id
                and r.book_key.lower() == book_key.lower()
                and r.deleted_at is None
            ):
                raise DuplicateLike(f"active like exists for user={user_id} key={book_key}")
        row = LikeRow(id=str(uuid4()), user_id=user_id, book_key=book_key, created_at=utcnow())
        self.likes.append(row)
        return row

    async def delete_likes(
        self, *, user_id: str, book_keys: Collection[str], soft: bool
    ) -> int:
        await asyncio.sleep(0)
        wanted = _folded(book_keys)
        now = utcnow()
        removed = 0
        kept: list[LikeRow] = []
        for r in self.likes:
            if r.user_id == user_id and r.book_key.lower() in wanted and r.deleted_at is None:
                removed += 1
                if soft:
                    kept.append(replace(r, deleted_at=now))
                continue
            kept.append(r)
        self.likes = kept
        return removed

    async def insert_comment(
        self, *, user_id: str, book_key: str, content: str
    ) -> CommentRow:
        await asyncio.sleep(0)
        row = CommentRow(
            id=str(uuid4()),
            user_id=user_id,
            book_key=book_key,
            content=content,
            created_at=utcnow(),
        )
        self.comments.append(row)
        return row

    async def delete_comment(self, *, user_id: str, comment_id: str) -> CommentRow | None:
        await asyncio.sleep(0)
        for i, c in enumerate(self.comments):
            if c.id == comment_id and c.user_id == user_id:
                return self.comments.pop(i)
        return None

    async def upsert_book_cache(self, entry: BookCacheEntry) -> None:
        await asyncio.sleep(0)
        self.book_cache[entry.book_key] = entry

    async def insert_activity_event(self, event: ActivityEventIn) -> None:
        await asyncio.sleep(0)
        self.activity_events.append(event)

    async def delete_activity_events(
        self,
        *,
        actor_id: str,
        event_type: str,
        book_keys: Collection[str],
        comment_id: str | None = None,
    ) -> int:
        await asyncio.sleep(0)
        wanted = _folded(book_keys)

        def matches(e: ActivityEventIn) -> bool:
            return (
                e.actor_id == actor_id
                and e.event_type == event_type
                and e.book_key.lower() in wanted
                and (comment_id is None or e.comment_id == comment_id)
            )

        before = len(self.activity_events)
        self.activity_events = [e for e in self.activity_events if not matches(e)]
        return before - len(self.activity_events)
