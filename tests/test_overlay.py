from worldofbits.coords import CellId
from worldofbits.events import EventBus, EventType
from worldofbits.overlay import WorldOverlay
from worldofbits.tokens import EMPTY, Token, TokenGenerator


def _generated_cell(gen: TokenGenerator) -> CellId:
    """First cell on row 0 whose base token is non-empty."""
    col = 0
    while gen.base_token(CellId(0, col)).is_empty:
        col += 1
    return CellId(0, col)


def test_get_defers_to_generator_until_set():
    gen = TokenGenerator()
    overlay = WorldOverlay(gen)
    cell = CellId(4, -9)
    assert overlay.get(cell) == gen.base_token(cell)
    assert cell not in overlay

    overlay.set(cell, Token(64))
    assert overlay.get(cell) == Token(64)
    assert overlay.is_modified(cell)


def test_explicit_empty_differs_from_absence():
    gen = TokenGenerator()
    overlay = WorldOverlay(gen)
    cell = _generated_cell(gen)
    assert not overlay.get(cell).is_empty

    overlay.set(cell, EMPTY)
    assert overlay.get(cell).is_empty
    assert overlay.entries() == [(cell, EMPTY)]


def test_writes_do_not_leak_to_other_cells():
    gen = TokenGenerator()
    overlay = WorldOverlay(gen)
    others = [CellId(r, c) for r in range(-3, 4) for c in range(-3, 4) if (r, c) != (0, 0)]
    before = [overlay.get(c) for c in others]
    overlay.set(CellId(0, 0), Token(16))
    assert [overlay.get(c) for c in others] == before


def test_set_publishes_cell_changed_and_reset_publishes_world_reset():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.CELL_CHANGED, lambda e: seen.append(e.payload))
    bus.subscribe(EventType.WORLD_RESET, lambda e: seen.append("reset"))
    overlay = WorldOverlay(TokenGenerator(), bus)

    overlay.set(CellId(1, 1), Token(2))
    overlay.reset()

    assert seen == [{"cell": CellId(1, 1), "token": Token(2)}, "reset"]
    assert len(overlay) == 0


def test_load_replaces_silently_and_keeps_order():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.CELL_CHANGED, seen.append)
    overlay = WorldOverlay(TokenGenerator(), bus)
    overlay.set(CellId(9, 9), Token(2))
    seen.clear()

    overlay.load([(CellId(2, 0), Token(4)), (CellId(1, 0), EMPTY)])

    assert seen == []
    assert list(overlay) == [CellId(2, 0), CellId(1, 0)]
    assert CellId(9, 9) not in overlay


def test_rewrite_keeps_insertion_position():
    overlay = WorldOverlay(TokenGenerator())
    overlay.set(CellId(0, 1), Token(2))
    overlay.set(CellId(0, 2), Token(2))
    overlay.set(CellId(0, 1), Token(4))
    assert overlay.entries() == [(CellId(0, 1), Token(4)), (CellId(0, 2), Token(2))]
