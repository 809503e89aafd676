"""Thread-safe object pool with a mandatory reset step."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Pool(Generic[T]):
    """Recycles objects between requests.

    Every released object goes through *reset* before another caller can
    acquire it, so no state leaks from one borrower to the next.

    Parameters
    ----------
    factory:
        Builds a fresh object when no idle one is available.
    reset:
        Clears an object's per-use state on release.
    max_idle:
        Upper bound on idle objects kept for reuse; extras are dropped.
    """

    __slots__ = ("_factory", "_idle", "_lock", "_reset", "max_idle")

    def __init__(self, factory: Callable[[], T], reset: Callable[[T], None], *, max_idle: int = 1024) -> None:
        self._factory = factory
        self._reset = reset
        self._idle: list[T] = []
        self._lock = threading.Lock()
        self.max_idle = max_idle

    def acquire(self) -> T:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return self._factory()

    def release(self, obj: T) -> None:
        self._reset(obj)
        with self._lock:
            if len(self._idle) < self.max_idle:
                self._idle.append(obj)

    def __len__(self) -> int:
        """Number of idle objects."""
        with self._lock:
            return len(self._idle)
