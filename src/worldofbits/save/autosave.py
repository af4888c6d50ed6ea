from __future__ import annotations

import abc
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Tuple

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 0.4


class TimerHandle(abc.ABC):
    @abc.abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running; no-op once it has run."""


class Timers(abc.ABC):
    """Source of delayed callbacks, so debouncing does not depend on a clock."""

    @abc.abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once, ``delay`` seconds from now."""


class _ThreadingHandle(TimerHandle):
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingTimers(Timers):
    """Wall-clock timers backed by daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return _ThreadingHandle(timer)


class _ManualHandle(TimerHandle):
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers(Timers):
    """Deterministic timers for tests and headless drivers.

    Time only moves when ``advance`` is called; due callbacks then run
    synchronously in deadline order.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualHandle, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move time forward and run everything now due. Returns how many ran."""
        deadline = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, handle, callback = heapq.heappop(self._queue)
            self.now = when
            if handle.cancelled:
                continue
            callback()
            ran += 1
        self.now = deadline
        return ran


class DebouncedSaver:
    """Coalesces bursts of mutations into one deferred write.

    ``schedule`` arms a single timer if none is pending; later calls in
    the window do nothing. ``write`` is called at fire time, so it must
    read the state it saves then, not capture it when scheduling. Write
    failures are logged and passed to ``on_error``; they never propagate.
    """

    def __init__(
        self,
        timers: Timers,
        write: Callable[[], None],
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        on_error: Optional[Callable[[PersistenceError], None]] = None,
    ) -> None:
        self._timers = timers
        self._write = write
        self.delay = delay
        self._on_error = on_error
        self._lock = threading.RLock()
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None

    def schedule(self) -> bool:
        """Arm the timer unless already armed. Returns True if newly armed."""
        with self._lock:
            if self._handle is not None:
                return False
            self._handle = self._timers.call_later(self.delay, self._fire)
            logger.debug("Autosave scheduled in %.3fs", self.delay)
            return True

    def cancel(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()
            logger.debug("Autosave cancelled")

    def flush(self) -> bool:
        """Run a pending write now. Returns False if nothing was pending."""
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is None:
            return False
        handle.cancel()
        self._run()
        return True

    def _fire(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            self._handle = None
        self._run()

    def _run(self) -> None:
        try:
            self._write()
        except PersistenceError as exc:
            logger.warning("Autosave failed: %s", exc)
            if self._on_error is not None:
                self._on_error(exc)
