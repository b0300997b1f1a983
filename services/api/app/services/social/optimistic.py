from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

from app.domain.book_key import BookInput
from app.services.social.errors import SocialError
from app.services.social.likes import LikeToggleEngine, ToggleResult


@dataclass
class LikeViewState:
    likes: int = 0
    comments: int = 0
    liked: bool = False


@dataclass
class OptimisticCommand:
    """A speculative change paired with the action that undoes it."""

    forward: Callable[[], None]
    compensate: Callable[[], None]
    applied: bool = False

    def apply(self) -> None:
        if not self.applied:
            self.forward()
            self.applied = True

    def rollback(self) -> None:
        if self.applied:
            self.compensate()
            self.applied = False


class RequestGenerations:
    """Monotonic request counter used to drop results of superseded calls."""

    def __init__(self) -> None:
        self._current = 0
        self._closed = False

    def next(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._current

    def close(self) -> None:
        # Owner is gone: nothing in flight may touch its state any more.
        self._closed = True
        self._current += 1


def flip_like(state: LikeViewState, baseline: LikeViewState | None = None) -> OptimisticCommand:
    """Flip ``state`` optimistically.

    Rolling back restores ``baseline`` as it is at rollback time, or the
    pre-flip view when no baseline is given.
    """
    before = replace(state)

    def forward() -> None:
        state.liked = not before.liked
        state.likes = max(0, before.likes + (-1 if before.liked else 1))

    def compensate() -> None:
        target = baseline or before
        state.liked = target.liked
        state.likes = target.likes

    return OptimisticCommand(forward=forward, compensate=compensate)


class OptimisticLikeController:
    """Apply a like flip locally, then reconcile with the engine's verdict.

    ``confirmed`` tracks what the server has acknowledged. Every settled
    request folds its delta into it, including superseded ones, and the view
    is always reset from it, so an optimistic flip that never reached the
    server cannot leak into later counts.
    """

    def __init__(
        self,
        engine: LikeToggleEngine,
        state: LikeViewState,
        generations: RequestGenerations | None = None,
    ):
        self.engine = engine
        self.state = state
        self.confirmed = replace(state)
        self.generations = generations or RequestGenerations()

    async def toggle(self, user_id: str | None, book: BookInput) -> ToggleResult | None:
        """Returns None when the result arrived for a superseded or closed request."""
        generation = self.generations.next()
        command = flip_like(self.state, baseline=self.confirmed)
        command.apply()

        try:
            result = await self.engine.toggle(user_id, book)
        except SocialError:
            if self.generations.is_current(generation):
                command.rollback()
            raise

        self.confirmed.liked = result.liked
        self.confirmed.likes = result.apply(self.confirmed.likes)

        if not self.generations.is_current(generation):
            return None

        self.state.liked = self.confirmed.liked
        self.state.likes = self.confirmed.likes
        return result

    def close(self) -> None:
        self.generations.close()
