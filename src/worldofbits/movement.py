from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .coords import CellId, CellMapper
from .events import EventBus, EventType
from .position import PositionSample
from .state import MovementMode, WorldState

logger = logging.getLogger(__name__)

_UNIT_DELTAS = (-1, 0, 1)


class MoveKind(Enum):
    MOVED = "moved"
    HOLDING = "holding"
    IGNORED = "ignored"


@dataclass(frozen=True)
class MoveResult:
    kind: MoveKind
    cell: CellId
    previous: Optional[CellId] = None

    @property
    def moved(self) -> bool:
        return self.kind is MoveKind.MOVED


class MovementController:
    """Changes the player's cell, by key steps or by position samples.

    Only one mode is live at a time (``PlayerState.movement_mode``); input
    for the other mode is ignored. There are no bounds or collisions: the
    world is infinite. Every move publishes ``player.moved``.
    """

    def __init__(self, mapper: CellMapper, bus: Optional[EventBus] = None) -> None:
        self.mapper = mapper
        self._bus = bus

    def set_mode(self, state: WorldState, mode: MovementMode) -> bool:
        """Switch input routing; never moves the player. Returns True if changed."""
        if state.player.movement_mode is mode:
            return False
        logger.info("Movement mode %s -> %s", state.player.movement_mode.value, mode.value)
        state.player.movement_mode = mode
        return True

    def step(self, state: WorldState, d_row: int, d_col: int) -> MoveResult:
        """Move one cell in stepped mode.

        Args:
            state: World to mutate.
            d_row: -1 (south), 0 or 1 (north).
            d_col: -1 (west), 0 or 1 (east).

        Raises:
            ValueError: if a delta is outside {-1, 0, 1}.
        """
        if d_row not in _UNIT_DELTAS or d_col not in _UNIT_DELTAS:
            raise ValueError(f"step deltas must be in {{-1, 0, 1}}, got ({d_row}, {d_col})")
        current = state.player.cell
        if state.player.movement_mode is not MovementMode.STEPPED:
            logger.debug("Step (%d, %d) ignored in %s mode", d_row, d_col, state.player.movement_mode.value)
            return MoveResult(MoveKind.IGNORED, current)
        if d_row == 0 and d_col == 0:
            return MoveResult(MoveKind.HOLDING, current)
        return self._move_to(state, current.offset(d_row, d_col))

    def apply_sample(self, state: WorldState, sample: PositionSample) -> MoveResult:
        """Snap to the sample's cell in sampled mode, deduplicating repeats."""
        if state.player.movement_mode is not MovementMode.SAMPLED:
            logger.debug("Sample %s ignored in %s mode", sample, state.player.movement_mode.value)
            return MoveResult(MoveKind.IGNORED, state.player.cell)
        return self.relocate(state, sample)

    def relocate(self, state: WorldState, sample: PositionSample) -> MoveResult:
        """Snap to the sample's cell regardless of mode.

        Samples with a non-finite field are dropped as IGNORED and
        are not recorded as the last sample.
        """
        if not all(math.isfinite(v) for v in (sample.lat, sample.lng, sample.accuracy)):
            logger.warning("Dropping non-finite position sample %s", sample)
            return MoveResult(MoveKind.IGNORED, state.player.cell)
        target = self.mapper.to_cell(sample)
        state.player.last_sample = sample
        if target == state.player.cell:
            return MoveResult(MoveKind.HOLDING, target)
        return self._move_to(state, target)

    def _move_to(self, state: WorldState, target: CellId) -> MoveResult:
        previous = state.player.cell
        state.player.cell = target
        logger.debug("Player moved %s -> %s", previous, target)
        if self._bus is not None:
            self._bus.publish(EventType.PLAYER_MOVED, {"cell": target, "previous": previous})
        return MoveResult(MoveKind.MOVED, target, previous)
