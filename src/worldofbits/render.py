from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .coords import CellBounds, CellId, CellMapper, Position, chebyshev_distance
from .state import MovementMode, WorldState
from .tokens import Token

DEFAULT_MAX_RENDER_CELLS = 20_000


@dataclass(frozen=True)
class RenderCell:
    cell: CellId
    token: Token
    near: bool


@dataclass(frozen=True)
class Hud:
    held: Token
    goal: int
    player_cell: CellId
    status: str
    movement_mode: MovementMode
    follow_enabled: bool

    @property
    def held_text(self) -> str:
        return str(self.held)


@dataclass(frozen=True)
class RenderModel:
    window: CellBounds
    rows: Tuple[int, int]
    cols: Tuple[int, int]
    cells: Tuple[RenderCell, ...]
    hud: Hud

    def at(self, cell: CellId) -> Optional[RenderCell]:
        """The entry for ``cell`` if it is inside the model's range."""
        (r0, r1), (c0, c1) = self.rows, self.cols
        if not (r0 <= cell.row <= r1 and c0 <= cell.col <= c1):
            return None
        width = c1 - c0 + 1
        return self.cells[(cell.row - r0) * width + (cell.col - c0)]


def window_around(mapper: CellMapper, center: CellId, radius: int) -> CellBounds:
    """Window covering ``radius`` cells on every side of ``center``."""
    lo = mapper.cell_bounds(center.offset(-radius, -radius))
    hi = mapper.cell_bounds(center.offset(radius, radius))
    return CellBounds(south=lo.south, west=lo.west, north=hi.north, east=hi.east)


class RenderModelBuilder:
    """Turns world state plus a lat/lng window into what a view draws.

    The enumerated range covers every cell the window touches plus one
    cell of margin on each side. Building never mutates the state.
    """

    def __init__(
        self,
        mapper: CellMapper,
        interaction_radius: int,
        max_cells: int = DEFAULT_MAX_RENDER_CELLS,
    ) -> None:
        self.mapper = mapper
        self.interaction_radius = interaction_radius
        self.max_cells = max_cells

    def cell_range(self, window: CellBounds) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        sw = self.mapper.to_cell(Position(window.south, window.west))
        ne = self.mapper.to_cell(Position(window.north, window.east))
        return (sw.row - 1, ne.row + 1), (sw.col - 1, ne.col + 1)

    def build(self, state: WorldState, window: CellBounds, status: str = "") -> RenderModel:
        (r0, r1), (c0, c1) = self.cell_range(window)
        count = max(0, r1 - r0 + 1) * max(0, c1 - c0 + 1)
        if count > self.max_cells:
            raise ValueError(f"Render window spans {count} cells (limit {self.max_cells})")

        player = state.player
        cells: List[RenderCell] = []
        for row in range(r0, r1 + 1):
            for col in range(c0, c1 + 1):
                cell = CellId(row, col)
                near = chebyshev_distance(player.cell, cell) <= self.interaction_radius
                cells.append(RenderCell(cell, state.token_at(cell), near))

        hud = Hud(
            held=player.held,
            goal=player.goal,
            player_cell=player.cell,
            status=status,
            movement_mode=player.movement_mode,
            follow_enabled=player.follow_enabled,
        )
        return RenderModel(window=window, rows=(r0, r1), cols=(c0, c1), cells=tuple(cells), hud=hud)
