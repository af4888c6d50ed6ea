from __future__ import annotations

import math
from dataclasses import dataclass

TILE_DEGREES = 1e-4


@dataclass(frozen=True, order=True)
class CellId:
    """One square of the infinite world grid.

    ``row`` follows latitude and ``col`` follows longitude, so row + 1 is
    one cell north and col + 1 one cell east. Cells are never created or
    destroyed; any integer pair names a cell.
    """

    row: int
    col: int

    def key(self) -> str:
        """Canonical string form, e.g. ``"-3,12"``."""
        return f"{self.row},{self.col}"

    def offset(self, d_row: int, d_col: int) -> "CellId":
        return CellId(self.row + d_row, self.col + d_col)

    def __str__(self) -> str:
        return f"({self.row}, {self.col})"


@dataclass(frozen=True)
class Position:
    """A continuous (lat, lng) point."""

    lat: float
    lng: float


@dataclass(frozen=True)
class CellBounds:
    south: float
    west: float
    north: float
    east: float

    def contains(self, position: Position) -> bool:
        return self.south <= position.lat < self.north and self.west <= position.lng < self.east


def chebyshev_distance(a: CellId, b: CellId) -> int:
    """Max of the absolute per-axis differences between two cells."""
    return max(abs(a.row - b.row), abs(a.col - b.col))


@dataclass(frozen=True)
class CellMapper:
    """Converts continuous positions to cells and back.

    The grid is anchored at (0, 0). Conversion floors each axis by
    ``cell_size`` and then corrects by one cell if float rounding put the
    point outside the bounds ``cell_bounds`` reports, so the two functions
    always agree.
    """

    cell_size: float = TILE_DEGREES

    def __post_init__(self) -> None:
        if not (self.cell_size > 0 and math.isfinite(self.cell_size)):
            raise ValueError(f"cell_size must be a positive finite number, got {self.cell_size!r}")

    def _axis_index(self, value: float) -> int:
        index = math.floor(value / self.cell_size)
        if index * self.cell_size > value:
            index -= 1
        elif (index + 1) * self.cell_size <= value:
            index += 1
        return index

    def to_cell(self, position: Position) -> CellId:
        return CellId(self._axis_index(position.lat), self._axis_index(position.lng))

    def cell_bounds(self, cell: CellId) -> CellBounds:
        size = self.cell_size
        return CellBounds(
            south=cell.row * size,
            west=cell.col * size,
            north=(cell.row + 1) * size,
            east=(cell.col + 1) * size,
        )

    def cell_center(self, cell: CellId) -> Position:
        b = self.cell_bounds(cell)
        return Position(lat=(b.south + b.north) / 2.0, lng=(b.west + b.east) / 2.0)


__all__ = [
    "TILE_DEGREES",
    "CellId",
    "Position",
    "CellBounds",
    "CellMapper",
    "chebyshev_distance",
]
