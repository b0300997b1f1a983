from __future__ import annotations

from typing import Optional

from app.api.deps import (
    get_comment_service,
    get_counts_aggregator,
    get_current_user_id,
    get_like_engine,
    get_optional_user_id,
)
from app.api.rate_limit import rate_limiter
from app.core.config import settings
from app.domain.book_key import resolve
from app.schemas.social import (
    CommentIn,
    CommentListOut,
    CommentOut,
    LikerOut,
    LikersOut,
    SocialCountsEntryOut,
    SocialCountsIn,
    SocialCountsOut,
    ToggleLikeIn,
    ToggleLikeOut,
)
from app.services.social.comments import CommentService
from app.services.social.counts import SocialCountsAggregator
from app.services.social.likes import LikeToggleEngine
from app.services.social.store import CommentRow
from fastapi import APIRouter, Depends, HTTPException, Query, Response

router = APIRouter(prefix="/v1/social", tags=["social"])


def _comment_out(c: CommentRow) -> CommentOut:
    return CommentOut(
        id=c.id,
        user_id=c.user_id,
        book_key=c.book_key,
        content=c.content,
        created_at=c.created_at,
    )


@router.post(
    "/counts",
    response_model=SocialCountsOut,
    dependencies=[
        Depends(
            rate_limiter(
                "social_counts",
                limit=settings.rate_limit_counts_per_window,
                window_seconds=settings.rate_limit_window_seconds,
            )
        )
    ],
)
async def get_social_counts(
    body: SocialCountsIn,
    user_id: Optional[str] = Depends(get_optional_user_id),
    aggregator: SocialCountsAggregator = Depends(get_counts_aggregator),
):
    if len(body.book_keys) > settings.counts_max_keys:
        raise HTTPException(
            status_code=422,
            detail=f"At most {settings.counts_max_keys} book keys per request",
        )

    counts = await aggregator.aggregate(body.book_keys, requesting_user=user_id)
    degraded = bool(body.book_keys) and not counts
    return SocialCountsOut(
        counts={
            key: SocialCountsEntryOut(
                likes=c.likes, comments=c.comments, is_liked=c.is_liked_by_user
            )
            for key, c in counts.items()
        },
        degraded=degraded,
    )


@router.post(
    "/likes/toggle",
    response_model=ToggleLikeOut,
    dependencies=[
        Depends(
            rate_limiter(
                "social_like",
                limit=settings.rate_limit_social_per_window,
                window_seconds=settings.rate_limit_window_seconds,
            )
        )
    ],
)
async def toggle_like(
    body: ToggleLikeIn,
    user_id: str = Depends(get_current_user_id),
    engine: LikeToggleEngine = Depends(get_like_engine),
):
    result = await engine.toggle(user_id, body.book)
    return ToggleLikeOut(
        book_key=result.book_key,
        liked=result.liked,
        created=result.created,
        likes_delta=result.likes_delta,
        likes=result.apply(body.current_likes),
    )


@router.get("/likers", response_model=LikersOut)
async def get_likers(
    book_key: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    aggregator: SocialCountsAggregator = Depends(get_counts_aggregator),
):
    rows = await aggregator.likers(book_key, limit=limit, offset=offset)
    return LikersOut(
        book_key=resolve(book_key),
        limit=limit,
        offset=offset,
        items=[LikerOut(user_id=r.user_id, liked_at=r.created_at) for r in rows],
    )


@router.post(
    "/comments",
    response_model=CommentOut,
    status_code=201,
    dependencies=[
        Depends(
            rate_limiter(
                "social_comment",
                limit=settings.rate_limit_social_per_window,
                window_seconds=settings.rate_limit_window_seconds,
            )
        )
    ],
)
async def post_comment(
    body: CommentIn,
    user_id: str = Depends(get_current_user_id),
    comments: CommentService = Depends(get_comment_service),
):
    row = await comments.add_comment(user_id, body.book, body.content)
    return _comment_out(row)


@router.get("/comments", response_model=CommentListOut)
async def get_comments(
    book_key: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=200),
    comments: CommentService = Depends(get_comment_service),
):
    rows = await comments.list_comments(book_key, limit=limit)
    return CommentListOut(book_key=resolve(book_key), items=[_comment_out(c) for c in rows])


@router.delete(
    "/comments/{comment_id}",
    status_code=204,
    dependencies=[
        Depends(
            rate_limiter(
                "social_comment",
                limit=settings.rate_limit_social_per_window,
                window_seconds=settings.rate_limit_window_seconds,
            )
        )
    ],
)
async def delete_comment(
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    comments: CommentService = Depends(get_comment_service),
):
    await comments.delete_comment(user_id, comment_id)
    return Response(status_code=204)
