from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from app.models.base import Base
from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActivityEvent(Base):
    __tablename__ = "activity_events"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )

    actor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    book_key: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    comment_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Snapshots taken at event time so the feed renders without a join.
    book_title: Mapped[str | None] = mapped_column(String(600), nullable=True)
    book_author: Mapped[str | None] = mapped_column(String(400), nullable=True)
    book_cover_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )


Index("ix_activity_events_book_key_lower", func.lower(ActivityEvent.book_key))
