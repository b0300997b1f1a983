from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Collection, Protocol

LIKE_EVENT = "book_like"
COMMENT_EVENT = "book_comment"


@dataclass(frozen=True)
class LikeRow:
    id: str | None
    user_id: str
    book_key: str
    created_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class CommentRow:
    id: str | None
    user_id: str
    book_key: str
    content: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class BookCacheEntry:
    book_key: str
    title: str
    author: str | None = None
    cover_url: str | None = None
    isbn: str | None = None
    source: str = "unknown"


@dataclass(frozen=True)
class ActivityEventIn:
    actor_id: str
    event_type: str
    book_key: str
    comment_id: str | None = None
    book_title: str | None = None
    book_author: str | None = None
    book_cover_url: str | None = None


class SocialStore(Protocol):
    """Row-level access to the likes/comments relations and their side tables.

    ``book_keys`` filters match stored keys case-insensitively. Implementations
    raise ``StoreUnavailable`` for transport failures and ``DuplicateLike`` when
    an insert hits the active (user, book key) uniqueness rule.
    """

    async def select_likes(
        self,
        book_keys: Collection[str],
        *,
        user_id: str | None = None,
        active_only: bool = True,
    ) -> list[LikeRow]: ...

    async def select_comments(self, book_keys: Collection[str]) -> list[CommentRow]: ...

    async def insert_like(self, *, user_id: str, book_key: str) -> LikeRow: ...

    async def delete_likes(
        self, *, user_id: str, book_keys: Collection[str], soft: bool
    ) -> int: ...

    async def insert_comment(
        self, *, user_id: str, book_key: str, content: str
    ) -> CommentRow: ...

    async def delete_comment(self, *, user_id: str, comment_id: str) -> CommentRow | None:
        """Delete the comment only if ``user_id`` wrote it; return the removed row."""
        ...

    async def upsert_book_cache(self, entry: BookCacheEntry) -> None: ...

    async def insert_activity_event(self, event: ActivityEventIn) -> None: ...

    async def delete_activity_events(
        self,
        *,
        actor_id: str,
        event_type: str,
        book_keys: Collection[str],
        comment_id: str | None = None,
    ) -> int: ...


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def sort_timestamp(dt: datetime | None) -> datetime:
    """Comparable timestamp for rows that may carry naive, aware or no datetimes."""
    if dt is None:
        return _EPOCH
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
