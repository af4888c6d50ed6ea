import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from worldofbits.config import WorldConfig  # noqa: E402
from worldofbits.coords import CellId  # noqa: E402
from worldofbits.game import GameSession  # noqa: E402
from worldofbits.position import ScriptedPositionSource  # noqa: E402
from worldofbits.save.autosave import ManualTimers  # noqa: E402
from worldofbits.save.storage import SaveSlot  # noqa: E402
from worldofbits.state import PlayerState, WorldState  # noqa: E402
from worldofbits.tokens import TokenGenerator  # noqa: E402


@pytest.fixture()
def world() -> WorldState:
    """Player at the origin cell, empty hand, goal 32."""
    return WorldState(PlayerState(cell=CellId(0, 0), goal=32), TokenGenerator())


@pytest.fixture()
def config() -> WorldConfig:
    # start in the middle of cell (0, 0)
    return WorldConfig(start_lat=0.00005, start_lng=0.00005, goal=32, view_radius=3)


@pytest.fixture()
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture()
def source() -> ScriptedPositionSource:
    return ScriptedPositionSource()


@pytest.fixture()
def slot(tmp_path: Path) -> SaveSlot:
    return SaveSlot(tmp_path / "saves")


@pytest.fixture()
def session(config, slot, timers, source) -> GameSession:
    s = GameSession(config, slot=slot, timers=timers, position_source=source)
    yield s
    s.tracker.stop()
