"""Keyed, cancellable timer registry.

Each key holds at most one armed timer; scheduling a key again cancels
the previous timer first. Timers run on daemon threads so an armed expiry
never keeps the process alive, and :meth:`TimerRegistry.shutdown` cancels
everything deterministically.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerScheduler(Protocol):
    def schedule(self, key: Hashable, delay: float, callback: Callable[[], None]) -> None: ...

    def cancel(self, key: Hashable) -> bool: ...

    def armed(self) -> list[Hashable]: ...

    def shutdown(self) -> None: ...


class TimerRegistry:
    """:class:`threading.Timer`-backed implementation of :class:`TimerScheduler`."""

    def __init__(self) -> None:
        self._timers: dict[Hashable, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule(self, key: Hashable, delay: float, callback: Callable[[], None]) -> None:
        """Arm *callback* to run after *delay* seconds, replacing any timer for *key*."""
        timer = threading.Timer(delay, self._fire, args=(key, callback))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(key, None)
            self._timers[key] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def cancel(self, key: Hashable) -> bool:
        """Cancel the timer for *key*. Returns False if none was armed."""
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def armed(self) -> list[Hashable]:
        with self._lock:
            return list(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def _fire(self, key: Hashable, callback: Callable[[], None]) -> None:
        with self._lock:
            current = self._timers.get(key)
            if current is not threading.current_thread():
                return  # replaced or cancelled after the wait finished
            del self._timers[key]
        try:
            callback()
        except Exception:
            logger.warning("Timer callback for %r failed", key, exc_info=True)
