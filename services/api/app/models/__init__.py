from app.models.activity_event import ActivityEvent
from app.models.base import Base
from app.models.book_cache import BookCache
from app.models.book_comment import CommentRecord
from app.models.book_like import LikeRecord


__all__ = [
    "Base",
    "LikeRecord",
    "CommentRecord",
    "BookCache",
    "ActivityEvent",
]
