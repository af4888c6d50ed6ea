from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .coords import CellId, chebyshev_distance
from .state import WorldState
from .tokens import EMPTY, Token

logger = logging.getLogger(__name__)

DEFAULT_INTERACTION_RADIUS = 3


class InteractionKind(Enum):
    PICKUP = "pickup"
    PLACE = "place"
    MERGE = "merge"
    TOO_FAR = "too_far"
    NOTHING_TO_PICK_UP = "nothing_to_pick_up"
    INCOMPATIBLE = "incompatible"

    @property
    def accepted(self) -> bool:
        return self in (InteractionKind.PICKUP, InteractionKind.PLACE, InteractionKind.MERGE)


MSG_TOO_FAR = "Too far away to interact with that cell."
MSG_NOTHING = "Nothing here to pick up."
MSG_INCOMPATIBLE = "Cell has a different token; no merge possible."
MSG_GOAL = " Goal reached!"


@dataclass(frozen=True)
class InteractionResult:
    """What a click did.

    ``value`` is the held value after a pickup, the placed value after a
    place and the merged value after a merge; it is None for rejections.
    """

    kind: InteractionKind
    cell: CellId
    message: str
    value: Optional[int] = None
    goal_reached: bool = False

    @property
    def accepted(self) -> bool:
        return self.kind.accepted


class InteractionEngine:
    """Pickup / place / merge state machine.

    The only code path that writes to the overlay or changes the held
    token, which is what keeps every overlay value either generated or an
    exact doubling of two equal tokens.
    """

    def __init__(self, radius: int = DEFAULT_INTERACTION_RADIUS) -> None:
        if radius < 0:
            raise ValueError("interaction radius must be >= 0")
        self.radius = radius

    def in_reach(self, state: WorldState, cell: CellId) -> bool:
        return chebyshev_distance(state.player.cell, cell) <= self.radius

    def interact(self, state: WorldState, cell: CellId) -> InteractionResult:
        if not self.in_reach(state, cell):
            logger.debug("Click on %s rejected: too far from %s", cell, state.player.cell)
            return InteractionResult(InteractionKind.TOO_FAR, cell, MSG_TOO_FAR)

        held = state.player.held
        target = state.token_at(cell)

        if held.is_empty:
            if target.is_empty:
                return InteractionResult(InteractionKind.NOTHING_TO_PICK_UP, cell, MSG_NOTHING)
            return self._commit(state, cell, InteractionKind.PICKUP, new_held=target, written=EMPTY, value=target)

        if target.is_empty:
            return self._commit(state, cell, InteractionKind.PLACE, new_held=EMPTY, written=held, value=held)

        if target == held:
            merged = target.doubled()
            return self._commit(state, cell, InteractionKind.MERGE, new_held=EMPTY, written=merged, value=merged)

        logger.debug("Click on %s rejected: holding %s, cell has %s", cell, held, target)
        return InteractionResult(InteractionKind.INCOMPATIBLE, cell, MSG_INCOMPATIBLE)

    def _commit(
        self,
        state: WorldState,
        cell: CellId,
        kind: InteractionKind,
        *,
        new_held: Token,
        written: Token,
        value: Token,
    ) -> InteractionResult:
        state.player.held = new_held
        state.overlay.set(cell, written)

        goal_reached = kind is not InteractionKind.PLACE and value.value >= state.player.goal
        if kind is InteractionKind.PICKUP:
            message = f"Picked up {value}."
        elif kind is InteractionKind.PLACE:
            message = f"Placed {value}."
        else:
            message = f"Merged into {value}."
        if goal_reached:
            message += MSG_GOAL
            logger.info("Goal %d reached with %s at %s", state.player.goal, value, cell)
        logger.debug("%s at %s -> held=%s", kind.value, cell, new_held)
        return InteractionResult(kind, cell, message, value=value.value, goal_reached=goal_reached)
