from __future__ import annotations

import abc
import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, Optional

from .coords import Position
from .exceptions import PositionUnavailableError

logger = logging.getLogger(__name__)

SampleCallback = Callable[["PositionSample"], None]
ErrorCallback = Callable[[PositionUnavailableError], None]


@dataclass(frozen=True)
class PositionSample(Position):
    """A raw reading from a position source.

    Only informational for game logic: the player's cell is what counts.
    ``accuracy`` is the reported radius in meters (0 when unknown).
    """

    accuracy: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng, "accuracy": self.accuracy}


class PositionSource(abc.ABC):
    """Abstract device position sensor.

    Implementations wrap whatever actually produces positions (a GPS
    daemon, a browser bridge, a scripted feed). They deliver samples via
    callbacks; the game never polls them.
    """

    @abc.abstractmethod
    def once(self, timeout: float) -> PositionSample:
        """Return a single sample within ``timeout`` seconds.

        Raises PositionUnavailableError if none can be produced in time.
        """

    @abc.abstractmethod
    def watch(self, on_sample: SampleCallback, on_error: ErrorCallback) -> int:
        """Start continuous delivery; return a handle for ``clear_watch``.

        After ``on_error`` is called the watch is over and no more samples
        are delivered for that handle.
        """

    @abc.abstractmethod
    def clear_watch(self, handle: int) -> None:
        """Stop delivery for ``handle``. Unknown handles are ignored."""


class ScriptedPositionSource(PositionSource):
    """Synthetic position feed for tests and the terminal client.

    ``emit`` pushes a sample to every active watcher; ``fail`` reports a
    terminal error and ends all watches. ``once`` pops the next queued
    sample, or fails as a timeout when nothing is queued.
    """

    def __init__(self, queued: Iterable[PositionSample] = ()) -> None:
        self._lock = threading.RLock()
        self._queued: Deque[PositionSample] = deque(queued)
        self._watchers: Dict[int, tuple] = {}
        self._handles = itertools.count(1)

    def queue(self, sample: PositionSample) -> None:
        with self._lock:
            self._queued.append(sample)

    def once(self, timeout: float) -> PositionSample:
        with self._lock:
            if self._queued:
                return self._queued.popleft()
        raise PositionUnavailableError(f"no position within {timeout:g}s")

    def watch(self, on_sample: SampleCallback, on_error: ErrorCallback) -> int:
        with self._lock:
            handle = next(self._handles)
            self._watchers[handle] = (on_sample, on_error)
        logger.debug("Scripted source watch %d started", handle)
        return handle

    def clear_watch(self, handle: int) -> None:
        with self._lock:
            self._watchers.pop(handle, None)

    @property
    def watching(self) -> bool:
        with self._lock:
            return bool(self._watchers)

    def emit(self, sample: PositionSample) -> None:
        with self._lock:
            callbacks = [cb for cb, _ in self._watchers.values()]
        for cb in callbacks:
            cb(sample)

    def fail(self, reason: str) -> None:
        with self._lock:
            watchers = list(self._watchers.values())
            self._watchers.clear()
        err = PositionUnavailableError(reason)
        for _, on_error in watchers:
            on_error(err)


class PositionTracker:
    """Cancellable follow mode on top of a PositionSource.

    Every ``start`` opens a new generation; callbacks from an older
    generation are dropped, so a source that keeps calling back after
    ``clear_watch`` cannot move the player once ``stop`` has returned.
    ``stop`` is idempotent and safe before any ``start``.
    """

    def __init__(self, source: PositionSource) -> None:
        self._source = source
        self._lock = threading.RLock()
        self._handle: Optional[int] = None
        self._generation = 0

    @property
    def source(self) -> PositionSource:
        return self._source

    @property
    def active(self) -> bool:
        with self._lock:
            return self._handle is not None

    def start(self, on_sample: SampleCallback, on_error: ErrorCallback) -> None:
        with self._lock:
            if self._handle is not None:
                return
            self._generation += 1
            generation = self._generation

            def _sample(sample: PositionSample) -> None:
                if self._is_current(generation):
                    on_sample(sample)
                else:
                    logger.debug("Dropping sample from stopped watch: %s", sample)

            def _error(err: PositionUnavailableError) -> None:
                if not self._is_current(generation):
                    return
                with self._lock:
                    self._handle = None
                    self._generation += 1
                on_error(err)

            self._handle = self._source.watch(_sample, _error)
            logger.info("Position tracking started")

    def stop(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
            self._generation += 1
        if handle is not None:
            self._source.clear_watch(handle)
            logger.info("Position tracking stopped")

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return self._handle is not None and generation == self._generation
