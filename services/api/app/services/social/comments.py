from __future__ import annotations

from app.domain.book_key import UNKNOWN_KEY, BookInput, expand, resolve
from app.services.social.errors import CommentNotFound, EmptyComment, NotAuthenticated
from app.services.social.likes import book_meta, require_identity
from app.services.social.side_effects import SideEffectRunner
from app.services.social.store import (
    COMMENT_EVENT,
    ActivityEventIn,
    CommentRow,
    SocialStore,
    sort_timestamp,
)

COMMENT_MAX_LEN = 2000


class CommentService:
    def __init__(self, store: SocialStore, *, side_effects: SideEffectRunner | None = None):
        self.store = store
        self.side_effects = side_effects or SideEffectRunner()

    async def add_comment(self, user_id: str | None, book: BookInput, content: str) -> CommentRow:
        user_id, key = require_identity(user_id, book)
        text = (content or "").strip()
        if not text:
            raise EmptyComment("comment is empty")
        text = text[:COMMENT_MAX_LEN]

        row = await self.store.insert_comment(user_id=user_id, book_key=key, content=text)

        meta = book_meta(book)
        event = ActivityEventIn(
            actor_id=user_id,
            event_type=COMMENT_EVENT,
            book_key=key,
            comment_id=row.id,
            book_title=meta.title if meta else None,
            book_author=meta.author if meta else None,
            book_cover_url=meta.cover_url if meta else None,
        )

        async def insert_feed_event() -> None:
            await self.store.insert_activity_event(event)

        self.side_effects.schedule("activity_event.insert", insert_feed_event)
        return row

    async def delete_comment(self, user_id: str | None, comment_id: str) -> CommentRow:
        """Delete one of the user's own comments and its feed entry."""
        if not user_id:
            raise NotAuthenticated("user is not authenticated")
        row = await self.store.delete_comment(user_id=user_id, comment_id=comment_id)
        if row is None:
            raise CommentNotFound(comment_id)

        async def remove_feed_event() -> None:
            await self.store.delete_activity_events(
                actor_id=user_id,
                event_type=COMMENT_EVENT,
                book_keys={row.book_key},
                comment_id=comment_id,
            )

        self.side_effects.schedule("activity_event.delete", remove_feed_event)
        return row

    async def list_comments(self, book: BookInput, *, limit: int = 50) -> list[CommentRow]:
        if resolve(book) == UNKNOWN_KEY:
            return []
        rows = await self.store.select_comments(expand(book))
        unique = {r.id or f"{r.user_id}:{r.book_key}:{r.created_at}": r for r in rows}
        ordered = sorted(unique.values(), key=lambda r: sort_timestamp(r.created_at), reverse=True)
        return ordered[:limit]
