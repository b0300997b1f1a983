from __future__ import annotations

import time
from typing import Callable


class ActionThrottle:
    """Minimum-interval gate keyed by action (e.g. ``"isbn:978...:like"``).

    Entries older than the interval no longer gate anything and are pruned
    every ``prune_every`` checks, or immediately once ``max_entries`` is hit.
    """

    def __init__(
        self,
        *,
        interval_secs: float = 0.4,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
        prune_every: int = 256,
    ):
        self.interval_secs = interval_secs
        self._clock = clock
        self._max_entries = max_entries
        self._prune_every = max(1, prune_every)
        self._last: dict[str, float] = {}
        self._checks = 0

    def allow(self, key: str) -> bool:
        now = self._clock()
        self._checks += 1
        if self._checks % self._prune_every == 0 or len(self._last) >= self._max_entries:
            self.prune(now)

        last = self._last.get(key)
        if last is not None and (now - last) < self.interval_secs:
            return False
        self._last[key] = now
        return True

    def prune(self, now: float | None = None) -> int:
        if now is None:
            now = self._clock()
        stale = [k for k, ts in self._last.items() if (now - ts) >= self.interval_secs]
        for k in stale:
            del self._last[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._last)
