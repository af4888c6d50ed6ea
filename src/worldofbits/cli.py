from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from .config import load_world_config
from .coords import CellId
from .exceptions import ConfigError
from .game import GameSession
from .logging_config import configure_logging
from .position import PositionSample, ScriptedPositionSource
from .render import RenderModel
from .save.storage import SaveSlot
from .state import MovementMode

STEPS = {
    "n": (1, 0),
    "s": (-1, 0),
    "e": (0, 1),
    "w": (0, -1),
}

HELP = """\
Commands:
  n | s | e | w          step one cell north/south/east/west
  c DROW DCOL            click the cell at an offset from the player
  click ROW COL          click an absolute cell
  sample LAT LNG [ACC]   feed a position sample (used by follow / snap)
  follow on|off          track the position feed
  snap                   jump to the next fed sample
  mode stepped|sampled   switch movement input
  save | load | new      persistence
  help | quit"""


def draw(model: RenderModel) -> str:
    """ASCII view: north at the top, ``@`` marks the player."""
    hud = model.hud
    (r0, r1), (c0, c1) = model.rows, model.cols
    lines: List[str] = []
    for row in range(r1, r0 - 1, -1):
        parts = []
        for col in range(c0, c1 + 1):
            entry = model.at(CellId(row, col))
            text = "" if entry.token.is_empty else str(entry.token)
            if entry.cell == hud.player_cell:
                text = "@" + text
            elif not text:
                text = "." if entry.near else ""
            parts.append(f"{text:>4}")
        lines.append(f"{row:>8} " + "".join(parts))
    lines.append(
        f"Held: {hud.held_text}  Goal: {hud.goal}  Cell: {hud.player_cell}  "
        f"Mode: {hud.movement_mode.value}{' (following)' if hud.follow_enabled else ''}"
    )
    lines.append(hud.status)
    return "\n".join(lines)


def handle_command(session: GameSession, source: ScriptedPositionSource, line: str) -> bool:
    """Apply one command line. Returns False when the user quits."""
    words = line.split()
    if not words:
        return True
    cmd, args = words[0].lower(), words[1:]
    try:
        if cmd in ("q", "quit", "exit"):
            return False
        if cmd in STEPS:
            result = session.step(*STEPS[cmd])
            if not result.moved:
                session.status = f"Step {result.kind.value}."
        elif cmd == "c" and len(args) == 2:
            here = session.state.player.cell
            session.click(here.offset(int(args[0]), int(args[1])))
        elif cmd == "click" and len(args) == 2:
            session.click(CellId(int(args[0]), int(args[1])))
        elif cmd == "sample" and len(args) in (2, 3):
            sample = PositionSample(float(args[0]), float(args[1]), float(args[2]) if len(args) == 3 else 0.0)
            if source.watching:
                source.emit(sample)
            else:
                source.queue(sample)
        elif cmd == "follow" and args in (["on"], ["off"]):
            if args[0] == "on":
                session.enable_follow()
            else:
                session.disable_follow()
        elif cmd == "snap":
            session.snap_to_position()
        elif cmd == "mode" and len(args) == 1:
            session.set_movement_mode(MovementMode(args[0]))
        elif cmd == "save":
            if session.save_now():
                session.status = "Game saved."
        elif cmd == "load":
            session.load()
        elif cmd == "new":
            session.new_game()
        else:
            session.status = HELP
    except ValueError as exc:
        session.status = f"Bad command: {exc}"
    return True


def run(session: GameSession, source: ScriptedPositionSource, lines: Iterable[str], out: TextIO) -> None:
    out.write(draw(session.render()) + "\n")
    for line in lines:
        if not handle_command(session, source, line):
            break
        out.write(draw(session.render()) + "\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="worldofbits", description="World of Bits terminal client")
    p.add_argument("--config", help="YAML file overriding the default world config")
    p.add_argument("--save-dir", type=Path, help="Directory holding the save slot")
    p.add_argument("--no-save", action="store_true", help="Play without loading or saving")
    p.add_argument("--new", action="store_true", help="Start a new game, discarding any save")
    p.add_argument("--seed", help="World seed (selects a different generated world)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.debug else None)

    try:
        config = load_world_config(args.config)
    except (ConfigError, OSError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    if args.seed is not None:
        config = config.replace(world_seed=args.seed)

    slot = None
    if not args.no_save:
        slot = SaveSlot(args.save_dir or config.save_dir)

    source = ScriptedPositionSource()
    session = GameSession(config, slot=slot, position_source=source)
    if args.new:
        session.new_game()
    elif slot is not None:
        session.load()

    try:
        run(session, source, sys.stdin, sys.stdout)
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
