from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from app.models.base import Base
from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LikeRecord(Base):
    __tablename__ = "book_likes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Whatever key spelling the writing client used; new rows are canonical.
    book_key: Mapped[str] = mapped_column(String(300), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Soft delete: NULL = active like, NOT NULL = unliked
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


# At most one active like per (user, stored key), ignoring case. Re-liking
# after a soft delete inserts a fresh row.
Index(
    "ix_book_likes_user_key_active_unique",
    LikeRecord.user_id,
    func.lower(LikeRecord.book_key),
    unique=True,
    postgresql_where=LikeRecord.deleted_at.is_(None),
    sqlite_where=LikeRecord.deleted_at.is_(None),
)

Index("ix_book_likes_book_key_lower", func.lower(LikeRecord.book_key))
