from datetime import datetime, timedelta, timezone

import pytest
from app.services.social.counts import SocialCountsAggregator
from app.services.social.errors import StoreUnavailable
from app.services.social.memory_store import InMemorySocialStore
from app.services.social.store import CommentRow, LikeRow

KEY = "isbn:9780141439518"


def _like(user_id, book_key, **kw):
    return LikeRow(id=f"{user_id}:{book_key}", user_id=user_id, book_key=book_key, **kw)


def _comment(cid, book_key):
    return CommentRow(id=cid, user_id="u", book_key=book_key, content="nice")


class DoublingStore(InMemorySocialStore):
    """Returns every row twice, like overlapping batched queries can."""

    async def select_likes(self, book_keys, *, user_id=None, active_only=True):
        rows = await super().select_likes(book_keys, user_id=user_id, active_only=active_only)
        return rows + rows

    async def select_comments(self, book_keys):
        rows = await super().select_comments(book_keys)
        return rows + rows


class FailingStore(InMemorySocialStore):
    async def select_likes(self, book_keys, *, user_id=None, active_only=True):
        raise StoreUnavailable("connection reset")


@pytest.mark.asyncio
async def test_counts_merge_legacy_spellings(memory_store):
    memory_store.likes += [
        _like("u1", "9780141439518"),
        _like("u2", "isbn:9780141439518"),
        _like("u3", "ISBN:9780141439518"),
    ]

    counts = await SocialCountsAggregator(memory_store).aggregate([KEY])

    assert set(counts) == {KEY}
    assert counts[KEY].likes == 3
    assert counts[KEY].comments == 0
    assert counts[KEY].is_liked_by_user is None


@pytest.mark.asyncio
async def test_counts_include_isbn10_counterpart_and_comments(memory_store):
    memory_store.likes.append(_like("u1", "0141439513"))
    memory_store.comments += [_comment("c1", KEY), _comment("c2", "isbn:0141439513")]

    counts = await SocialCountsAggregator(memory_store).aggregate([KEY])

    assert counts[KEY].likes == 1
    assert counts[KEY].comments == 2


@pytest.mark.asyncio
async def test_soft_deleted_likes_are_not_counted(memory_store):
    now = datetime.now(timezone.utc)
    memory_store.likes += [_like("u1", KEY), _like("u2", KEY, deleted_at=now)]

    counts = await SocialCountsAggregator(memory_store).aggregate([KEY])
    assert counts[KEY].likes == 1


@pytest.mark.asyncio
async def test_rows_are_counted_once():
    store = DoublingStore()
    store.likes += [_like("u1", KEY), _like("u2", "9780141439518")]
    store.comments.append(_comment("c1", KEY))

    counts = await SocialCountsAggregator(store).aggregate([KEY])

    assert counts[KEY].likes == 2
    assert counts[KEY].comments == 1


@pytest.mark.asyncio
async def test_overlapping_requested_keys_do_not_double_count(memory_store):
    memory_store.likes += [_like("u1", KEY), _like("u2", "9780141439518")]

    counts = await SocialCountsAggregator(memory_store).aggregate([KEY, "9780141439518", KEY])

    assert list(counts) == [KEY, "9780141439518"]
    assert counts[KEY].likes + counts["9780141439518"].likes == 2
    # the first requested key claims every spelling it shares
    assert counts[KEY].likes == 2


@pytest.mark.asyncio
async def test_unknown_and_unmatched_keys_are_zero_filled(memory_store):
    counts = await SocialCountsAggregator(memory_store).aggregate(["unknown", "google:abc"])

    assert counts["unknown"].likes == 0
    assert counts["google:abc"].likes == 0
    assert counts["google:abc"].comments == 0


@pytest.mark.asyncio
async def test_empty_request_returns_empty(memory_store):
    assert await SocialCountsAggregator(memory_store).aggregate([]) == {}


@pytest.mark.asyncio
async def test_store_failure_returns_empty_not_zeros():
    counts = await SocialCountsAggregator(FailingStore()).aggregate([KEY])
    assert counts == {}


@pytest.mark.asyncio
async def test_is_liked_by_requesting_user(memory_store):
    memory_store.likes.append(_like("u1", "ISBN:9780141439518"))
    agg = SocialCountsAggregator(memory_store)

    mine = await agg.aggregate([KEY, "google:other"], requesting_user="u1")
    assert mine[KEY].is_liked_by_user is True
    assert mine["google:other"].is_liked_by_user is False

    theirs = await agg.aggregate([KEY], requesting_user="u2")
    assert theirs[KEY].is_liked_by_user is False


@pytest.mark.asyncio
async def test_comments_without_id_are_skipped(memory_store):
    memory_store.comments += [
        CommentRow(id=None, user_id="u", book_key=KEY, content="x"),
        _comment("c1", KEY),
    ]

    counts = await SocialCountsAggregator(memory_store).aggregate([KEY])
    assert counts[KEY].comments == 1


@pytest.mark.asyncio
async def test_likers_latest_per_user_newest_first(memory_store):
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    memory_store.likes += [
        LikeRow(id="a", user_id="u1", book_key="9780141439518", created_at=t0),
        LikeRow(id="b", user_id="u2", book_key=KEY, created_at=t0 + timedelta(minutes=1)),
        LikeRow(id="c", user_id="u1", book_key=KEY, created_at=t0 + timedelta(minutes=2)),
    ]
    agg = SocialCountsAggregator(memory_store)

    likers = await agg.likers(KEY)
    assert [r.id for r in likers] == ["c", "b"]

    page = await agg.likers(KEY, limit=1, offset=1)
    assert [r.user_id for r in page] == ["u2"]

    assert await agg.likers("unknown") == []


@pytest.mark.asyncio
async def test_counts_match_any_casing_of_stored_keys(memory_store):
    memory_store.likes += [
        _like("u1", "Isbn:9780141439518"),
        _like("u2", "ol:/works/ol123w"),
        _like("u3", "/WORKS/OL123W"),
    ]
    memory_store.comments.append(_comment("c1", "OL:/WORKS/OL123W"))

    counts = await SocialCountsAggregator(memory_store).aggregate([KEY, "ol:/works/OL123W"])

    assert counts[KEY].likes == 1
    assert counts["ol:/works/OL123W"].likes == 2
    assert counts["ol:/works/OL123W"].comments == 1
