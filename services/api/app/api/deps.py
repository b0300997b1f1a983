from __future__ import annotations

from typing import Optional

from app.core.config import settings
from app.core.security import decode_access_token
from app.services.social.comments import CommentService
from app.services.social.counts import SocialCountsAggregator
from app.services.social.factory import get_side_effects, get_store, get_throttle
from app.services.social.likes import LikeToggleEngine
from app.services.social.store import SocialStore
from app.workers.events import publish_social_changed
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError  # type: ignore[import-untyped]


def _extract_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization")
    if not auth:
        return None
    parts = auth.split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme.lower() != "bearer":
        return None
    return token


def get_optional_user_id(request: Request) -> Optional[str]:
    """Return the authenticated user id, or None for anonymous requests.

    A token that is present but invalid is still rejected.
    """
    # Allow either Authorization: Bearer <token> OR cookie-based auth
    token = _extract_bearer_token(request) or request.cookies.get(settings.auth_cookie_name)
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return str(user_id)


def get_current_user_id(user_id: Optional[str] = Depends(get_optional_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id


def get_social_store() -> SocialStore:
    return get_store()


def get_like_engine(store: SocialStore = Depends(get_social_store)) -> LikeToggleEngine:
    return LikeToggleEngine(
        store,
        side_effects=get_side_effects(),
        throttle=get_throttle(),
        soft_delete=settings.likes_soft_delete,
        notifier=publish_social_changed,
    )


def get_counts_aggregator(
    store: SocialStore = Depends(get_social_store),
) -> SocialCountsAggregator:
    return SocialCountsAggregator(store)


def get_comment_service(store: SocialStore = Depends(get_social_store)) -> CommentService:
    return CommentService(store, side_effects=get_side_effects())
