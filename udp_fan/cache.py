"""Short-lived memory of the last known fan state."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta

from .const import DEFAULT_CACHE_TIMEOUT
from .models import CacheEntry, FanState


class StateCache:
    """Hold a single state entry with a freshness window.

    Stale entries are never dropped: they stay available through
    :meth:`read_stale_fallback` for when a live query fails.
    """

    def __init__(
        self,
        timeout: timedelta = DEFAULT_CACHE_TIMEOUT,
        *,
        monotonic: Callable[[], float] | None = None,
    ) -> None:
        """Configure the freshness window and the clock used to measure it."""

        self._timeout = timeout
        self._monotonic = monotonic or time.monotonic
        self._entry: CacheEntry | None = None

    @property
    def timeout(self) -> timedelta:
        """Return the freshness window."""

        return self._timeout

    @property
    def entry(self) -> CacheEntry | None:
        """Return the raw entry regardless of freshness."""

        return self._entry

    def read(self) -> FanState | None:
        """Return the cached state if it is still fresh."""

        entry = self._entry
        if entry is None or not entry.is_fresh(self._monotonic(), self._timeout):
            return None
        return entry.state

    def write(self, state: FanState) -> None:
        """Replace the entry and restart its freshness window."""

        self._entry = CacheEntry(state=state, captured_at=self._monotonic())

    def read_stale_fallback(self) -> FanState | None:
        """Return the last written state, fresh or not."""

        return None if self._entry is None else self._entry.state
