import math

import pytest

from worldofbits.coords import CellId, CellMapper
from worldofbits.events import EventBus, EventType
from worldofbits.movement import MoveKind, MovementController
from worldofbits.position import PositionSample
from worldofbits.state import MovementMode


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def controller(bus) -> MovementController:
    return MovementController(CellMapper(1e-4), bus)


def test_step_moves_one_cell_without_bounds(world, controller):
    for _ in range(5):
        assert controller.step(world, -1, 0).moved
    assert world.player.cell == CellId(-5, 0)
    assert controller.step(world, 0, 1).cell == CellId(-5, 1)


def test_step_rejects_large_deltas(world, controller):
    with pytest.raises(ValueError):
        controller.step(world, 2, 0)
    assert world.player.cell == CellId(0, 0)


def test_zero_step_holds(world, controller):
    r = controller.step(world, 0, 0)
    assert r.kind is MoveKind.HOLDING
    assert world.player.cell == CellId(0, 0)


def test_samples_deduplicate_within_a_cell(world, controller):
    controller.set_mode(world, MovementMode.SAMPLED)
    first = controller.apply_sample(world, PositionSample(0.00031, 0.00012, 5.0))
    second = controller.apply_sample(world, PositionSample(0.00039, 0.00018, 4.0))

    assert first.kind is MoveKind.MOVED
    assert first.previous == CellId(0, 0)
    assert second.kind is MoveKind.HOLDING
    assert world.player.cell == CellId(3, 1)
    assert world.player.last_sample == PositionSample(0.00039, 0.00018, 4.0)


def test_inputs_for_inactive_mode_are_ignored(world, controller):
    r = controller.apply_sample(world, PositionSample(0.0005, 0.0005))
    assert r.kind is MoveKind.IGNORED
    assert world.player.cell == CellId(0, 0)

    controller.set_mode(world, MovementMode.SAMPLED)
    r = controller.step(world, 1, 0)
    assert r.kind is MoveKind.IGNORED
    assert world.player.cell == CellId(0, 0)


def test_switching_mode_does_not_move(world, controller):
    assert controller.set_mode(world, MovementMode.SAMPLED) is True
    assert controller.set_mode(world, MovementMode.SAMPLED) is False
    assert world.player.cell == CellId(0, 0)


def test_every_move_publishes_player_moved(world, controller, bus):
    moves = []
    bus.subscribe(EventType.PLAYER_MOVED, lambda e: moves.append(e.payload["cell"]))

    controller.step(world, 1, 0)
    controller.step(world, 0, 0)
    controller.set_mode(world, MovementMode.SAMPLED)
    controller.apply_sample(world, PositionSample(-0.00005, -0.00005))
    controller.apply_sample(world, PositionSample(-0.00005, -0.00005))

    assert moves == [CellId(1, 0), CellId(-1, -1)]


def test_relocate_ignores_mode(world, controller):
    r = controller.relocate(world, PositionSample(0.00025, 0.00005))
    assert r.moved
    assert world.player.cell == CellId(2, 0)
    assert world.player.movement_mode is MovementMode.STEPPED


@pytest.mark.parametrize(
    "sample",
    [
        PositionSample(math.inf, 0.0),
        PositionSample(0.0, -math.inf),
        PositionSample(math.nan, 0.0),
        PositionSample(0.00015, 0.00015, math.nan),
    ],
)
def test_non_finite_samples_are_dropped(world, controller, sample):
    controller.set_mode(world, MovementMode.SAMPLED)
    controller.apply_sample(world, PositionSample(0.00005, 0.00005))
    recorded = world.player.last_sample

    result = controller.apply_sample(world, sample)

    assert result.kind is MoveKind.IGNORED
    assert world.player.cell == CellId(0, 0)
    assert world.player.last_sample == recorded
