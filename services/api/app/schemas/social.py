from __future__ import annotations

from datetime import datetime

from app.schemas.books import BookLike
from pydantic import BaseModel, Field


class SocialCountsIn(BaseModel):
    book_keys: list[str] = Field(default_factory=list)


class SocialCountsEntryOut(BaseModel):
    likes: int
    comments: int
    is_liked: bool | None = None


class SocialCountsOut(BaseModel):
    counts: dict[str, SocialCountsEntryOut]
    # True when the store could not be read; counts are unknown, not zero.
    degraded: bool = False


class ToggleLikeIn(BaseModel):
    book: BookLike
    current_likes: int = Field(default=0, ge=0)


class ToggleLikeOut(BaseModel):
    book_key: str
    liked: bool
    created: bool
    likes_delta: int
    likes: int


class LikerOut(BaseModel):
    user_id: str
    liked_at: datetime | None


class LikersOut(BaseModel):
    book_key: str
    limit: int
    offset: int
    items: list[LikerOut]


class CommentIn(BaseModel):
    book: BookLike
    content: str = Field(min_length=1, max_length=2000)


class CommentOut(BaseModel):
    id: str | None
    user_id: str
    book_key: str
    content: str
    created_at: datetime | None


class CommentListOut(BaseModel):
    book_key: str
    items: list[CommentOut]
