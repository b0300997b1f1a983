from datetime import datetime, timedelta, timezone

import pytest
from app.services.social.comments import COMMENT_MAX_LEN, CommentService
from app.services.social.errors import (
    CommentNotFound,
    EmptyComment,
    InvalidIdentity,
    NotAuthenticated,
)
from app.services.social.store import COMMENT_EVENT, CommentRow

KEY = "isbn:9780141439518"


@pytest.mark.asyncio
async def test_comment_written_under_canonical_key(memory_store, runner):
    svc = CommentService(memory_store, side_effects=runner)

    row = await svc.add_comment("u1", {"isbn": "978-0-14-143951-8", "title": "Emma"}, "  lovely  ")
    await runner.drain()

    assert row.book_key == KEY
    assert row.content == "lovely"
    [event] = memory_store.activity_events
    assert event.event_type == COMMENT_EVENT
    assert event.comment_id == row.id
    assert event.book_title == "Emma"


@pytest.mark.asyncio
async def test_comment_guards(memory_store, runner):
    svc = CommentService(memory_store, side_effects=runner)

    with pytest.raises(NotAuthenticated):
        await svc.add_comment(None, KEY, "hi")
    with pytest.raises(InvalidIdentity):
        await svc.add_comment("u1", {"publisher": "x"}, "hi")
    with pytest.raises(EmptyComment):
        await svc.add_comment("u1", KEY, "   ")
    assert memory_store.comments == []


@pytest.mark.asyncio
async def test_long_comment_is_truncated(memory_store, runner):
    svc = CommentService(memory_store, side_effects=runner)
    row = await svc.add_comment("u1", KEY, "x" * (COMMENT_MAX_LEN + 10))
    assert len(row.content) == COMMENT_MAX_LEN


@pytest.mark.asyncio
async def test_list_comments_merges_spellings_newest_first(memory_store, runner):
    t0 = datetime(2024, 5, 1, tzinfo=timezone.utc)
    memory_store.comments += [
        CommentRow(id="a", user_id="u1", book_key="9780141439518", content="old", created_at=t0),
        CommentRow(id="b", user_id="u2", book_key=KEY, content="new", created_at=t0 + timedelta(hours=1)),
        CommentRow(id="c", user_id="u3", book_key="google:zzz", content="other", created_at=t0),
    ]
    svc = CommentService(memory_store, side_effects=runner)

    rows = await svc.list_comments(KEY)
    assert [r.id for r in rows] == ["b", "a"]
    assert [r.id for r in await svc.list_comments(KEY, limit=1)] == ["b"]
    assert await svc.list_comments("unknown") == []


@pytest.mark.asyncio
async def test_delete_own_comment_removes_feed_event(memory_store, runner):
    svc = CommentService(memory_store, side_effects=runner)
    mine = await svc.add_comment("u1", KEY, "first")
    other = await svc.add_comment("u1", KEY, "second")
    await runner.drain()

    removed = await svc.delete_comment("u1", mine.id)
    await runner.drain()

    assert removed.id == mine.id
    assert [c.id for c in memory_store.comments] == [other.id]
    assert [e.comment_id for e in memory_store.activity_events] == [other.id]


@pytest.mark.asyncio
async def test_cannot_delete_someone_elses_comment(memory_store, runner):
    svc = CommentService(memory_store, side_effects=runner)
    row = await svc.add_comment("u1", KEY, "mine")

    with pytest.raises(CommentNotFound):
        await svc.delete_comment("u2", row.id)
    with pytest.raises(NotAuthenticated):
        await svc.delete_comment(None, row.id)
    assert len(memory_store.comments) == 1
