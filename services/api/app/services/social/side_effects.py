from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

ErrorSink = Callable[[str, BaseException], None]


class SideEffectRunner:
    """Run best-effort work detached from the request that triggered it.

    Scheduled work starts only after the caller yields, i.e. after the primary
    mutation result has been handed back. Failures go to the log and to the
    optional ``on_error`` sink; they never reach the caller. When
    ``max_pending`` tasks are already in flight new work is dropped.
    """

    def __init__(self, *, max_pending: int = 100, on_error: ErrorSink | None = None):
        self.max_pending = max_pending
        self.on_error = on_error
        self.failures = 0
        self.dropped = 0
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, name: str, factory: Callable[[], Awaitable[Any]]) -> bool:
        if len(self._pending) >= self.max_pending:
            self.dropped += 1
            logger.warning("side effect dropped; queue full", extra={"side_effect": name})
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.dropped += 1
            logger.warning("side effect dropped; no running loop", extra={"side_effect": name})
            return False

        task = loop.create_task(self._run(name, factory))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _run(self, name: str, factory: Callable[[], Awaitable[Any]]) -> None:
        try:
            await factory()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failures += 1
            logger.exception("side effect failed", extra={"side_effect": name})
            if self.on_error is not None:
                try:
                    self.on_error(name, exc)
                except Exception:
                    logger.exception("side effect error sink failed")

    async def drain(self) -> None:
        """Wait for every scheduled side effect, including ones scheduled meanwhile."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
