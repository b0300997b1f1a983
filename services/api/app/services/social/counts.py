from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Iterable

from app.domain.book_key import UNKNOWN_KEY, BookInput, expand, resolve
from app.services.social.errors import StoreUnavailable
from app.services.social.store import LikeRow, SocialStore, sort_timestamp

logger = logging.getLogger(__name__)


@dataclass
class SocialCounts:
    likes: int = 0
    comments: int = 0
    is_liked_by_user: bool | None = None


class _KeyIndex:
    """Map stored key spellings back to the requested keys that claim them.

    Exact spellings win; otherwise a case-insensitive match is used, the same
    comparison the stores apply when fetching rows. When several requested
    keys claim a spelling the first requested one wins.
    """

    def __init__(self, candidates: dict[str, frozenset[str]]):
        self._exact: dict[str, str] = {}
        self._folded: dict[str, str] = {}
        for key, cands in candidates.items():
            for c in cands:
                self._exact.setdefault(c, key)
                self._folded.setdefault(c.lower(), key)

    def owner(self, stored_key: str | None) -> str | None:
        if not stored_key:
            return None
        s = stored_key.strip()
        return self._exact.get(s) or self._folded.get(s.lower())


def _like_identity(row: LikeRow) -> Hashable:
    if row.id:
        return row.id
    return ("like", row.user_id, row.book_key)


class SocialCountsAggregator:
    def __init__(self, store: SocialStore):
        self.store = store

    async def aggregate(
        self,
        book_keys: Iterable[str],
        requesting_user: str | None = None,
    ) -> dict[str, SocialCounts]:
        """Return like/comment counts for each requested key.

        Every requested key is present in the result, zero-filled when no rows
        matched. An empty dict means the counts are unknown (store failure),
        not zero.
        """
        requested = list(dict.fromkeys(k for k in book_keys if k))
        if not requested:
            return {}

        candidates: dict[str, frozenset[str]] = {}
        for key in requested:
            if resolve(key) == UNKNOWN_KEY:
                continue
            candidates[key] = expand(key)

        universe: set[str] = set()
        for cands in candidates.values():
            universe |= cands
        universe.discard(UNKNOWN_KEY)

        try:
            like_rows = await self.store.select_likes(universe, active_only=True)
            comment_rows = await self.store.select_comments(universe)
            user_rows = (
                await self.store.select_likes(
                    universe, user_id=requesting_user, active_only=True
                )
                if requesting_user
                else []
            )
        except StoreUnavailable as exc:
            logger.warning("social counts unavailable", extra={"keys": len(requested), "error": str(exc)})
            return {}

        index = _KeyIndex(candidates)
        out = {
            key: SocialCounts(is_liked_by_user=False if requesting_user else None)
            for key in requested
        }

        seen: set[Hashable] = set()
        for like in like_rows:
            ident = _like_identity(like)
            if ident in seen:
                continue
            owner = index.owner(like.book_key)
            if owner is None:
                continue
            seen.add(ident)
            out[owner].likes += 1

        seen.clear()
        for comment in comment_rows:
            if not comment.id:
                logger.debug("comment row without id skipped", extra={"book_key": comment.book_key})
                continue
            if comment.id in seen:
                continue
            owner = index.owner(comment.book_key)
            if owner is None:
                continue
            seen.add(comment.id)
            out[owner].comments += 1

        for like in user_rows:
            if like.user_id != requesting_user:
                continue
            owner = index.owner(like.book_key)
            if owner is not None:
                out[owner].is_liked_by_user = True

        return out

    async def likers(
        self, book: BookInput, *, limit: int = 50, offset: int = 0
    ) -> list[LikeRow]:
        """Active likes for a book, one per user (latest), newest first."""
        if resolve(book) == UNKNOWN_KEY:
            return []
        rows = await self.store.select_likes(expand(book), active_only=True)

        latest: dict[str, LikeRow] = {}
        for r in rows:
            prev = latest.get(r.user_id)
            if prev is None or sort_timestamp(r.created_at) > sort_timestamp(prev.created_at):
                latest[r.user_id] = r

        ordered = sorted(latest.values(), key=lambda r: sort_timestamp(r.created_at), reverse=True)
        return ordered[offset : offset + limit]
