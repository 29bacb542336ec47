"""
Locking primitives for session state shared between submission and selection.

The engine normally runs on one asyncio loop, where every pool mutation
happens inside a single synchronous turn and the locks are uncontended.  A
caller may still drive the same engine from several threads, so the pool's
read-modify-write operations (marking, scanning, reshuffling) run inside a
:class:`CriticalSection`.
"""

from __future__ import annotations

import threading


class CriticalSection:
    """Re-entrant lock used as a context manager.

    Re-entrant so a selection may reshuffle the pool while already holding
    the section.  Compound pool updates are not atomic under the GIL either,
    so the lock is real on every build.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def __enter__(self) -> CriticalSection:
        self._lock.acquire()
        return self

    def __exit__(self, *args: object) -> None:
        self._lock.release()


class AtomicCounter:
    """Monotonic counter with an explicit reset, used for selection counting."""

    def __init__(self, initial: int = 0) -> None:
        self._initial = initial
        self._value = initial
        self._cs = CriticalSection()

    def increment(self, n: int = 1) -> int:
        """Add *n* to the counter and return the new value."""
        with self._cs:
            self._value += n
            return self._value

    def reset(self) -> None:
        """Return the counter to its initial value."""
        with self._cs:
            self._value = self._initial

    @property
    def value(self) -> int:
        with self._cs:
            return self._value
