import asyncio

import pytest
from app.services.social.errors import NotAuthenticated, StoreUnavailable
from app.services.social.likes import LikeToggleEngine
from app.services.social.memory_store import InMemorySocialStore
from app.services.social.optimistic import (
    LikeViewState,
    OptimisticLikeController,
    RequestGenerations,
    flip_like,
)

KEY = "isbn:9780141439518"


def test_flip_like_apply_and_rollback_are_idempotent():
    state = LikeViewState(likes=0, liked=True)
    cmd = flip_like(state)

    cmd.apply()
    cmd.apply()
    assert (state.likes, state.liked) == (0, False)

    cmd.rollback()
    cmd.rollback()
    assert (state.likes, state.liked) == (0, True)


def test_generations_close_invalidates_everything():
    gens = RequestGenerations()
    g = gens.next()
    assert gens.is_current(g)
    gens.close()
    assert not gens.is_current(g)
    assert not gens.is_current(gens.next())


@pytest.mark.asyncio
async def test_optimistic_like_reconciles_with_server(memory_store, runner):
    state = LikeViewState(likes=5)
    ctl = OptimisticLikeController(LikeToggleEngine(memory_store, side_effects=runner), state)

    res = await ctl.toggle("u1", KEY)
    assert res is not None and res.created
    assert (state.likes, state.liked) == (6, True)


@pytest.mark.asyncio
async def test_server_state_wins_over_stale_view(memory_store, runner):
    engine = LikeToggleEngine(memory_store, side_effects=runner)
    await engine.toggle("u1", KEY)

    # Stale view: the server already has this like but the client thinks not.
    state = LikeViewState(likes=1, liked=False)
    ctl = OptimisticLikeController(engine, state)

    res = await ctl.toggle("u1", KEY)
    assert res is not None
    # the server saw an active like, so this request unliked it
    assert (state.likes, state.liked) == (0, False)


@pytest.mark.asyncio
async def test_failure_rolls_back(memory_store, runner):
    state = LikeViewState(likes=3, liked=False)
    ctl = OptimisticLikeController(LikeToggleEngine(memory_store, side_effects=runner), state)

    with pytest.raises(NotAuthenticated):
        await ctl.toggle(None, KEY)
    assert (state.likes, state.liked) == (3, False)


@pytest.mark.asyncio
async def test_superseded_result_is_ignored(memory_store, runner):
    state = LikeViewState(likes=3)
    ctl = OptimisticLikeController(LikeToggleEngine(memory_store, side_effects=runner), state)

    task = asyncio.create_task(ctl.toggle("u1", KEY))
    await asyncio.sleep(0)
    assert (state.likes, state.liked) == (4, True)

    ctl.close()
    assert await task is None
    # the like itself still happened server-side
    assert len(memory_store.likes) == 1


class FlakyInsertStore(InMemorySocialStore):
    """Fails the first like insert, then behaves normally."""

    def __init__(self):
        super().__init__()
        self.fail_next_insert = True

    async def insert_like(self, *, user_id, book_key):
        if self.fail_next_insert:
            self.fail_next_insert = False
            await asyncio.sleep(0)
            raise StoreUnavailable("connection reset")
        return await super().insert_like(user_id=user_id, book_key=book_key)


@pytest.mark.asyncio
async def test_superseded_failure_does_not_skew_later_result(runner):
    store = FlakyInsertStore()
    state = LikeViewState(likes=5, liked=False)
    ctl = OptimisticLikeController(LikeToggleEngine(store, side_effects=runner), state)

    first, second = await asyncio.gather(
        ctl.toggle("u1", KEY), ctl.toggle("u1", KEY), return_exceptions=True
    )

    assert isinstance(first, StoreUnavailable)
    assert second is not None and second.created
    assert len(store.likes) == 1
    assert (state.likes, state.liked) == (6, True)
    assert (ctl.confirmed.likes, ctl.confirmed.liked) == (6, True)
