from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .coords import CellId
from .events import EventBus
from .overlay import WorldOverlay
from .position import PositionSample
from .tokens import EMPTY, Token, TokenGenerator


class MovementMode(Enum):
    STEPPED = "stepped"
    SAMPLED = "sampled"


@dataclass
class PlayerState:
    """Everything about the player that a save captures besides the overlay."""

    cell: CellId
    goal: int
    held: Token = EMPTY
    movement_mode: MovementMode = MovementMode.STEPPED
    follow_enabled: bool = False
    last_sample: Optional[PositionSample] = None

    def copy(self) -> "PlayerState":
        return replace(self)


class WorldState:
    """The single aggregate every component operates on.

    Holds the player and the overlay; the overlay owns the generator.
    Components receive this object explicitly instead of sharing globals.
    """

    def __init__(self, player: PlayerState, generator: TokenGenerator, bus: Optional[EventBus] = None) -> None:
        self.player = player
        self.overlay = WorldOverlay(generator, bus)

    def token_at(self, cell: CellId) -> Token:
        return self.overlay.get(cell)

    def restore(self, player: PlayerState, entries) -> None:
        """Adopt a decoded save wholesale."""
        self.player = player
        self.overlay.load(entries)
