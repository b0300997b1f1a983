from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Collection, Iterator, TypeVar

from app.models.activity_event import ActivityEvent
from app.models.book_cache import BookCache
from app.models.book_comment import CommentRecord
from app.models.book_like import LikeRecord
from app.services.social.errors import DuplicateLike, StoreUnavailable
from app.services.social.store import (
    ActivityEventIn,
    BookCacheEntry,
    CommentRow,
    LikeRow,
)
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _lowered_chunks(values: Collection[str], size: int) -> Iterator[list[str]]:
    # Stored keys are matched case-insensitively against lower(book_key).
    items = sorted({v.lower() for v in values if v})
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    msg = str(orig or exc).lower()
    return "unique" in msg or "duplicate" in msg


def _like_row(r: LikeRecord) -> LikeRow:
    return LikeRow(
        id=r.id,
        user_id=r.user_id,
        book_key=r.book_key,
        created_at=r.created_at,
        deleted_at=r.deleted_at,
    )


def _comment_row(r: CommentRecord) -> CommentRow:
    return CommentRow(
        id=r.id,
        user_id=r.user_id,
        book_key=r.book_key,
        content=r.content,
        created_at=r.created_at,
    )


class SqlSocialStore:
    """SocialStore backed by SQLAlchemy sessions.

    Each call runs in its own session on a worker thread and commits before
    returning, so the event loop keeps serving other requests while a query
    is in flight. ``IN`` filters compare ``lower(book_key)`` and are split
    into batches of ``in_batch_size`` values.
    """

    name = "sql"

    def __init__(self, session_factory: sessionmaker[Session], *, in_batch_size: int = 200):
        self._session_factory = session_factory
        self._in_batch_size = max(1, in_batch_size)

    async def _run(self, op: str, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with self._session_factory() as db:
                return fn(db)

        try:
            return await asyncio.to_thread(work)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"{op} failed: {exc}") from exc

    async def select_likes(
        self,
        book_keys: Collection[str],
        *,
        user_id: str | None = None,
        active_only: bool = True,
    ) -> list[LikeRow]:
        if not book_keys:
            return []

        def query(db: Session) -> list[LikeRow]:
            out: list[LikeRow] = []
            for chunk in _lowered_chunks(book_keys, self._in_batch_size):
                stmt = select(LikeRecord).where(func.lower(LikeRecord.book_key).in_(chunk))
                if user_id is not None:
                    stmt = stmt.where(LikeRecord.user_id == user_id)
                if active_only:
                    stmt = stmt.where(LikeRecord.deleted_at.is_(None))
                out.extend(_like_row(r) for r in db.execute(stmt).scalars().all())
            return out

        return await self._run("select_likes", query)

    async def select_comments(self, book_keys: Collection[str]) -> list[CommentRow]:
        if not book_keys:
            return []

        def query(db: Session) -> list[CommentRow]:
            out: list[CommentRow] = []
            for chunk in _lowered_chunks(book_keys, self._in_batch_size):
                stmt = select(CommentRecord).where(
                    func.lower(CommentRecord.book_key).in_(chunk)
                )
                out.extend(_comment_row(r) for r in db.execute(stmt).scalars().all())
            return out

        return await self._run("select_comments", query)

    async def insert_like(self, *, user_id: str, book_key: str) -> LikeRow:
        def write(db: Session) -> LikeRow:
            row = LikeRecord(user_id=user_id, book_key=book_key)
            db.add(row)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if _is_unique_violation(exc):
                    raise DuplicateLike(
                        f"active like exists for user={user_id} key={book_key}"
                    ) from exc
                raise StoreUnavailable(f"insert_like rejected: {exc}") from exc
            db.refresh(row)
            return _like_row(row)

        return await self._run("insert_like", write)

    async def delete_likes(
        self, *, user_id: str, book_keys: Collection[str], soft: bool
    ) -> int:
        if not book_keys:
            return 0

        def write(db: Session) -> int:
            removed = 0
            for chunk in _lowered_chunks(book_keys, self._in_batch_size):
                where = (
                    LikeRecord.user_id == user_id,
                    func.lower(LikeRecord.book_key).in_(chunk),
                    LikeRecord.deleted_at.is_(None),
                )
                if soft:
                    stmt = update(LikeRecord).where(*where).values(deleted_at=utcnow())
                else:
                    stmt = delete(LikeRecord).where(*where)
                res = db.execute(stmt.execution_options(synchronize_session=False))
                removed += int(getattr(res, "rowcount", 0) or 0)
            db.commit()
            return removed

        return await self._run("delete_likes", write)

    async def insert_comment(
        self, *, user_id: str, book_key: str, content: str
    ) -> CommentRow:
        def write(db: Session) -> CommentRow:
            row = CommentRecord(user_id=user_id, book_key=book_key, content=content)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _comment_row(row)

        return await self._run("insert_comment", write)

    async def delete_comment(self, *, user_id: str, comment_id: str) -> CommentRow | None:
        def write(db: Session) -> CommentRow | None:
            row = db.execute(
                select(CommentRecord).where(
                    CommentRecord.id == comment_id, CommentRecord.user_id == user_id
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            out = _comment_row(row)
            db.delete(row)
            db.commit()
            return out

        return await self._run("delete_comment", write)

    async def upsert_book_cache(self, entry: BookCacheEntry) -> None:
        def write(db: Session) -> None:
            existing = db.get(BookCache, entry.book_key)
            if existing:
                existing.title = entry.title
                existing.author = entry.author
                existing.cover_url = entry.cover_url
                existing.isbn = entry.isbn
                existing.source = entry.source
            else:
                db.add(
                    BookCache(
                        book_key=entry.book_key,
                        title=entry.title,
                        author=entry.author,
                        cover_url=entry.cover_url,
                        isbn=entry.isbn,
                        source=entry.source,
                    )
                )
            db.commit()

        await self._run("upsert_book_cache", write)

    async def insert_activity_event(self, event: ActivityEventIn) -> None:
        def write(db: Session) -> None:
            db.add(
                ActivityEvent(
                    actor_id=event.actor_id,
                    event_type=event.event_type,
                    book_key=event.book_key,
                    comment_id=event.comment_id,
                    book_title=event.book_title,
                    book_author=event.book_author,
                    book_cover_url=event.book_cover_url,
                )
            )
            db.commit()

        await self._run("insert_activity_event", write)

    async def delete_activity_events(
        self,
        *,
        actor_id: str,
        event_type: str,
        book_keys: Collection[str],
        comment_id: str | None = None,
    ) -> int:
        if not book_keys:
            return 0

        def write(db: Session) -> int:
            removed = 0
            for chunk in _lowered_chunks(book_keys, self._in_batch_size):
                stmt = delete(ActivityEvent).where(
                    ActivityEvent.actor_id == actor_id,
                    ActivityEvent.event_type == event_type,
                    func.lower(ActivityEvent.book_key).in_(chunk),
                )
                if comment_id is not None:
                    stmt = stmt.where(ActivityEvent.comment_id == comment_id)
                res = db.execute(stmt.execution_options(synchronize_session=False))
                removed += int(getattr(res, "rowcount", 0) or 0)
            db.commit()
            return removed

        return await self._run("delete_activity_events", write)
