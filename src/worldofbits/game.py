from __future__ import annotations

import logging
import threading
from typing import Optional

from .config import WorldConfig
from .coords import CellBounds, CellId, CellMapper, Position
from .events import PERSISTENT_EVENTS, Event, EventBus, EventType
from .exceptions import PersistenceError, PositionUnavailableError, UnsupportedSaveVersion
from .interaction import InteractionEngine, InteractionResult
from .movement import MoveResult, MovementController
from .position import PositionSample, PositionSource, PositionTracker
from .render import RenderModel, RenderModelBuilder, window_around
from .save import codec
from .save.autosave import DebouncedSaver, ThreadingTimers, Timers
from .save.storage import SaveSlot
from .state import MovementMode, PlayerState, WorldState
from .tokens import TokenGenerator

logger = logging.getLogger(__name__)

MSG_WELCOME = "Click a nearby numbered cell to pick up a token."
MSG_NO_SAVE = "No saved game found."
MSG_LOADED = "Loaded saved game."
MSG_NEW_GAME = "Started a new game."
MSG_SAVE_FAILED = "Could not save game."
MSG_FOLLOW_ON = "Following your position."
MSG_FOLLOW_OFF = "Stopped following your position."
MSG_NO_SOURCE = "No position source available."


class GameSession:
    """Owns one world and routes every external input into it.

    Clicks, steps and position samples may arrive from different threads
    (a position source callback, an autosave timer); a single re-entrant
    lock applies each one atomically, in arrival order. Mutations schedule
    a debounced save through the event bus.
    """

    def __init__(
        self,
        config: Optional[WorldConfig] = None,
        *,
        slot: Optional[SaveSlot] = None,
        timers: Optional[Timers] = None,
        position_source: Optional[PositionSource] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.config = config or WorldConfig()
        self.bus = bus or EventBus()
        self.slot = slot
        self.mapper = CellMapper(self.config.cell_size)
        self.generator = TokenGenerator(salt=self.config.token_salt, world_seed=self.config.world_seed)
        self.engine = InteractionEngine(self.config.interaction_radius)
        self.movement = MovementController(self.mapper, self.bus)
        self.renderer = RenderModelBuilder(
            self.mapper, self.config.interaction_radius, self.config.max_render_cells
        )
        self.tracker = PositionTracker(position_source) if position_source is not None else None
        self.autosave = DebouncedSaver(
            timers or ThreadingTimers(),
            self._write_save,
            delay=self.config.autosave_delay,
            on_error=self._on_save_error,
        )
        self._lock = threading.RLock()
        self.state = WorldState(self.default_player(), self.generator, self.bus)
        self.status = MSG_WELCOME
        self.view_center = self.state.player.cell

        for name in PERSISTENT_EVENTS:
            self.bus.subscribe(name, self._on_mutation)
        self.bus.subscribe(EventType.PLAYER_MOVED, self._on_player_moved)
        logger.info("Session started at %s (goal %d)", self.state.player.cell, self.state.player.goal)

    # ----------------------------------------------------------- state

    def default_player(self) -> PlayerState:
        start = Position(self.config.start_lat, self.config.start_lng)
        return PlayerState(cell=self.mapper.to_cell(start), goal=self.config.goal)

    def _set_status(self, message: str) -> None:
        self.status = message

    # ----------------------------------------------------------- input

    def click(self, cell: CellId) -> InteractionResult:
        with self._lock:
            result = self.engine.interact(self.state, cell)
            self._set_status(result.message)
            if result.goal_reached:
                self.bus.publish(EventType.GOAL_REACHED, {"cell": cell, "value": result.value})
            if result.accepted:
                self._publish_view()
            return result

    def step(self, d_row: int, d_col: int) -> MoveResult:
        with self._lock:
            return self.movement.step(self.state, d_row, d_col)

    def apply_sample(self, sample: PositionSample) -> MoveResult:
        with self._lock:
            return self.movement.apply_sample(self.state, sample)

    def set_movement_mode(self, mode: MovementMode) -> None:
        """Switch movement input. Leaving sampled mode while following stops follow."""
        with self._lock:
            if mode is MovementMode.STEPPED and self.state.player.follow_enabled:
                self.disable_follow()
                return
            if self.movement.set_mode(self.state, mode):
                self._publish_mode()

    # -------------------------------------------------------- tracking

    def enable_follow(self) -> bool:
        """Route movement through the position source until disabled."""
        with self._lock:
            if self.tracker is None:
                self._set_status(MSG_NO_SOURCE)
                return False
            self.movement.set_mode(self.state, MovementMode.SAMPLED)
            self.state.player.follow_enabled = True
            self.tracker.start(self.apply_sample, self._on_position_error)
            self._set_status(MSG_FOLLOW_ON)
            self._publish_mode()
            return True

    def disable_follow(self, message: str = MSG_FOLLOW_OFF) -> None:
        """Stop tracking and return to stepped movement. Safe to repeat."""
        with self._lock:
            if self.tracker is not None:
                self.tracker.stop()
            was_following = self.state.player.follow_enabled
            self.state.player.follow_enabled = False
            changed = self.movement.set_mode(self.state, MovementMode.STEPPED)
            if was_following or changed:
                self._set_status(message)
                self._publish_mode()

    def snap_to_position(self) -> Optional[MoveResult]:
        """One-shot move to the source's current position, bounded by snap_timeout."""
        if self.tracker is None:
            with self._lock:
                self._set_status(MSG_NO_SOURCE)
            return None
        try:
            sample = self.tracker.source.once(self.config.snap_timeout)
        except PositionUnavailableError as exc:
            logger.warning("Snap to position failed: %s", exc)
            with self._lock:
                self._set_status(f"Position unavailable: {exc}")
            return None
        with self._lock:
            return self.movement.relocate(self.state, sample)

    def _on_position_error(self, exc: PositionUnavailableError) -> None:
        logger.warning("Position source failed: %s", exc)
        self.disable_follow(message=f"Position unavailable: {exc}")

    # ---------------------------------------------------------- render

    def view_window(self, radius: Optional[int] = None) -> CellBounds:
        r = self.config.view_radius if radius is None else radius
        return window_around(self.mapper, self.view_center, r)

    def render(self, window: Optional[CellBounds] = None) -> RenderModel:
        with self._lock:
            return self.renderer.build(self.state, window or self.view_window(), self.status)

    def _on_player_moved(self, event: Event) -> None:
        self.view_center = event.payload["cell"]
        self._publish_view()

    def _publish_view(self) -> None:
        self.bus.publish(EventType.VIEW_CHANGED, {"center": self.view_center})

    def _publish_mode(self) -> None:
        player = self.state.player
        self.bus.publish(
            EventType.MODE_CHANGED,
            {"mode": player.movement_mode, "follow": player.follow_enabled},
        )

    # ----------------------------------------------------- persistence

    def _on_mutation(self, event: Event) -> None:
        if self.slot is not None:
            self.autosave.schedule()

    def _write_save(self) -> None:
        if self.slot is None:
            return
        with self._lock:
            blob = codec.encode(self.state, self.config.overlay_cap)
            self.slot.write(blob)
        self.bus.publish(EventType.SAVE_COMPLETED, {"path": str(self.slot.path)})

    def _on_save_error(self, exc: PersistenceError) -> None:
        with self._lock:
            self._set_status(MSG_SAVE_FAILED)
        self.bus.publish(EventType.SAVE_FAILED, {"error": str(exc)})

    def save_now(self) -> bool:
        """Write immediately, replacing any pending autosave."""
        if self.slot is None:
            return False
        self.autosave.cancel()
        try:
            self._write_save()
        except PersistenceError as exc:
            logger.warning("Save failed: %s", exc)
            self._on_save_error(exc)
            return False
        logger.info("Saved game to %s", self.slot.path)
        return True

    def load(self) -> bool:
        """Adopt the saved game, if any. Current state is untouched on failure."""
        if self.slot is None:
            return False
        blob = self.slot.read()
        with self._lock:
            if blob is None:
                self._set_status(MSG_NO_SAVE)
                return False
            try:
                decoded = codec.decode(blob, self.default_player(), self.config.overlay_cap)
            except UnsupportedSaveVersion as exc:
                logger.warning("Ignoring save: %s", exc)
                self._set_status(MSG_NO_SAVE)
                return False
            if self.tracker is not None:
                self.tracker.stop()
            self.state.restore(decoded.player, decoded.entries)
            self.view_center = self.state.player.cell
            self._set_status(MSG_LOADED)
            logger.info(
                "Loaded save v%d: player %s, %d overlay entries",
                decoded.version, decoded.player.cell, len(decoded.entries),
            )
            resume_follow = self.state.player.follow_enabled
        if resume_follow:
            if not self.enable_follow():
                self.disable_follow(message=MSG_LOADED)
        self._publish_view()
        return True

    def new_game(self) -> None:
        """Clear the save slot and reset everything to defaults.

        Runs under the session lock, so a save already in flight either
        lands before the slot is cleared or writes the reset state.
        """
        with self._lock:
            self.autosave.cancel()
            if self.slot is not None:
                try:
                    self.slot.clear()
                except PersistenceError as exc:
                    logger.warning("Could not clear save: %s", exc)
            if self.tracker is not None:
                self.tracker.stop()
            self.state.player = self.default_player()
            self.state.overlay.reset()
            self.view_center = self.state.player.cell
            self._set_status(MSG_NEW_GAME)
            logger.info("New game started at %s", self.state.player.cell)
        self._publish_view()

    def close(self) -> None:
        """Stop tracking and flush a pending autosave."""
        if self.tracker is not None:
            self.tracker.stop()
        self.autosave.flush()
