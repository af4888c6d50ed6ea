import pytest

from worldofbits.coords import CellId, CellMapper, Position, chebyshev_distance


def test_to_cell_floors_each_axis():
    m = CellMapper(1e-4)
    assert m.to_cell(Position(0.00005, 0.00015)) == CellId(0, 1)
    assert m.to_cell(Position(-0.00005, -0.00015)) == CellId(-1, -2)


def test_classroom_position_maps_to_expected_cell():
    m = CellMapper(1e-4)
    cell = m.to_cell(Position(36.997936938057016, -122.05703507501151))
    assert cell == CellId(369979, -1220571)


@pytest.mark.parametrize("cell", [CellId(0, 0), CellId(7, -3), CellId(-12, 40), CellId(369979, -1220571)])
def test_bounds_and_to_cell_agree_at_the_corners(cell):
    m = CellMapper(1e-4)
    b = m.cell_bounds(cell)
    # south-west corner belongs to the cell; north-east corner to the neighbour
    assert m.to_cell(Position(b.south, b.west)) == cell
    assert m.to_cell(Position(b.north, b.east)) == cell.offset(1, 1)
    assert m.to_cell(m.cell_center(cell)) == cell
    assert b.contains(m.cell_center(cell))


def test_bounds_are_exact_multiples_of_cell_size():
    m = CellMapper(0.5)
    b = m.cell_bounds(CellId(-2, 3))
    assert (b.south, b.west, b.north, b.east) == (-1.0, 1.5, -0.5, 2.0)


def test_chebyshev_distance_is_max_axis_difference():
    assert chebyshev_distance(CellId(0, 0), CellId(2, 1)) == 2
    assert chebyshev_distance(CellId(0, 0), CellId(-3, 3)) == 3
    assert chebyshev_distance(CellId(5, 5), CellId(5, 5)) == 0


def test_cell_key_is_canonical():
    assert CellId(-3, 12).key() == "-3,12"
    assert {CellId(1, 2): "x"}[CellId(1, 2)] == "x"


def test_mapper_rejects_bad_cell_size():
    with pytest.raises(ValueError):
        CellMapper(0)
