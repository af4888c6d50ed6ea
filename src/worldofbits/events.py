import logging
from collections import defaultdict
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)


class EventType:
    """Event names published on a session's bus."""

    # An overlay entry was written (pickup, place or merge)
    CELL_CHANGED = "cell.changed"

    # The player's cell changed, whatever the movement mode
    PLAYER_MOVED = "player.moved"

    # Movement mode or follow flag changed
    MODE_CHANGED = "movement.mode.changed"

    # A pickup or merge produced a value at or above the goal
    GOAL_REACHED = "goal.reached"

    # Overlay cleared by a new game
    WORLD_RESET = "world.reset"

    # The viewport should be redrawn around ``payload["center"]``
    VIEW_CHANGED = "view.changed"

    # A debounced or explicit save attempt finished
    SAVE_COMPLETED = "save.completed"
    SAVE_FAILED = "save.failed"


# Events that make the in-memory world differ from the last save.
PERSISTENT_EVENTS = (
    EventType.CELL_CHANGED,
    EventType.PLAYER_MOVED,
    EventType.MODE_CHANGED,
)


@dataclass(frozen=True)
class Event:
    """Generic event container.

    Attributes:
        name: Event type/name string, typically from EventType.
        payload: Arbitrary payload associated with the event.
    """
    name: str
    payload: Dict[str, Any]


class EventBus:
    """A lightweight publish/subscribe event bus.

    Callbacks for an event name run in registration order. A failing
    subscriber is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Callable[[Event], None]]] = defaultdict(list)
        self._lock = RLock()

    def subscribe(self, event_name: str, callback: Callable[[Event], None]) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._subs[event_name].append(callback)
            logger.debug("Subscribed %s to '%s'", getattr(callback, "__name__", str(callback)), event_name)

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        event = Event(name=event_name, payload=payload)
        with self._lock:
            subs = list(self._subs.get(event_name, []))
        logger.debug("Publishing event '%s' to %d subscribers with payload: %s", event_name, len(subs), payload)
        for cb in subs:
            try:
                cb(event)
            except Exception:  # pragma: no cover - guard rail
                logger.exception("Unhandled exception in event subscriber for '%s'", event_name)
