from __future__ import annotations

from datetime import datetime, timezone

from app.models.base import Base
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookCache(Base):
    """Denormalized book metadata keyed by canonical book key."""

    __tablename__ = "books_cache"

    book_key: Mapped[str] = mapped_column(String(300), primary_key=True)

    title: Mapped[str] = mapped_column(String(600), nullable=False)
    author: Mapped[str | None] = mapped_column(String(400), nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    isbn: Mapped[str | None] = mapped_column(String(20), nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
