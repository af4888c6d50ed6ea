"""Versioned save format for the world state.

Blob layout (version 2)::

    {
      "version": 2,
      "playerCell": [row, col],
      "heldToken": int | null,
      "goal": int,
      "overlay": [[row, col, int | null], ...],
      "movementMode": "stepped" | "sampled",
      "followEnabled": bool,
      "lastSample": {"lat": n, "lng": n, "accuracy": n} | null
    }

Version 1 blobs carry only the first four player fields; everything
newer is filled from defaults. Unknown versions are rejected whole. For
known versions each field is checked on its own and replaced by the
default when it is absent or malformed, so a bad field never takes the
rest of the save down with it.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from jsonschema import Draft202012Validator

from ..coords import CellId
from ..exceptions import UnsupportedSaveVersion
from ..position import PositionSample
from ..state import MovementMode, PlayerState, WorldState
from ..tokens import EMPTY, Token, is_token_value

logger = logging.getLogger(__name__)

SaveBlob = Dict[str, Any]

CURRENT_VERSION = 2
SUPPORTED_VERSIONS = (1, 2)
DEFAULT_OVERLAY_CAP = 10_000

_MISSING = object()

_INT = {"type": "integer"}
_TOKEN_OR_NULL = {"type": ["integer", "null"]}
_NUMBER = {"type": "number"}

# Field shape per version that introduced it.
FIELD_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "playerCell": {"type": "array", "prefixItems": [_INT, _INT], "minItems": 2, "maxItems": 2},
    "heldToken": _TOKEN_OR_NULL,
    "goal": {"type": "integer", "minimum": 1},
    "overlay": {"type": "array"},
    "movementMode": {"enum": [m.value for m in MovementMode]},
    "followEnabled": {"type": "boolean"},
    "lastSample": {
        "type": ["object", "null"],
        "required": ["lat", "lng", "accuracy"],
        "properties": {"lat": _NUMBER, "lng": _NUMBER, "accuracy": _NUMBER},
    },
}
OVERLAY_ENTRY_SCHEMA = {
    "type": "array",
    "prefixItems": [_INT, _INT, _TOKEN_OR_NULL],
    "minItems": 3,
    "maxItems": 3,
}
FIELDS_BY_VERSION: Dict[int, Tuple[str, ...]] = {
    1: ("playerCell", "heldToken", "goal", "overlay"),
    2: ("playerCell", "heldToken", "goal", "overlay", "movementMode", "followEnabled", "lastSample"),
}

_VALIDATORS = {name: Draft202012Validator(schema) for name, schema in FIELD_SCHEMAS.items()}
_ENTRY_VALIDATOR = Draft202012Validator(OVERLAY_ENTRY_SCHEMA)


@dataclass(frozen=True)
class DecodedSave:
    """Result of decoding: a fresh PlayerState plus overlay entries."""

    version: int
    player: PlayerState
    entries: Tuple[Tuple[CellId, Token], ...]
    defaulted: Tuple[str, ...] = ()


def encode(state: WorldState, cap: int = DEFAULT_OVERLAY_CAP) -> SaveBlob:
    """Project the world state into the current save format.

    Overlay entries past ``cap`` (in insertion order) are dropped.
    """
    player = state.player
    entries = state.overlay.entries()
    if len(entries) > cap:
        logger.warning("Overlay has %d entries; saving the first %d", len(entries), cap)
        entries = entries[:cap]
    return {
        "version": CURRENT_VERSION,
        "playerCell": [player.cell.row, player.cell.col],
        "heldToken": player.held.to_json(),
        "goal": player.goal,
        "overlay": [[cell.row, cell.col, token.to_json()] for cell, token in entries],
        "movementMode": player.movement_mode.value,
        "followEnabled": player.follow_enabled,
        "lastSample": player.last_sample.to_dict() if player.last_sample is not None else None,
    }


def read_version(blob: Any) -> int:
    if not isinstance(blob, Mapping):
        raise UnsupportedSaveVersion("Save blob is not an object")
    version = blob.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise UnsupportedSaveVersion(f"Save blob has no usable version: {version!r}")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedSaveVersion(f"Unsupported save version {version}")
    return version


def decode(blob: Any, defaults: PlayerState, cap: int = DEFAULT_OVERLAY_CAP) -> DecodedSave:
    """Build player state and overlay entries from a save blob.

    ``defaults`` supplies the value for every field that is missing,
    malformed, or newer than the blob's version. Neither argument is
    mutated, so decoding the same blob twice gives equal results.

    Raises:
        UnsupportedSaveVersion: if the version is missing or unknown.
    """
    version = read_version(blob)
    present = FIELDS_BY_VERSION[version]
    defaulted: List[str] = []

    def field(name: str) -> Any:
        if name not in present:
            return _MISSING
        if name not in blob:
            defaulted.append(name)
            return _MISSING
        value = blob[name]
        if not _VALIDATORS[name].is_valid(value) or not _finite(value):
            logger.warning("Save field %s is malformed (%r); using default", name, value)
            defaulted.append(name)
            return _MISSING
        return value

    player = defaults.copy()

    cell = field("playerCell")
    if cell is not _MISSING:
        player.cell = CellId(int(cell[0]), int(cell[1]))

    held = field("heldToken")
    if held is None:
        player.held = EMPTY
    elif held is not _MISSING:
        if is_token_value(int(held)):
            player.held = Token(int(held))
        else:
            logger.warning("Save heldToken %r is not a token value; using default", held)
            defaulted.append("heldToken")

    goal = field("goal")
    if goal is not _MISSING:
        player.goal = int(goal)

    mode = field("movementMode")
    if mode is not _MISSING:
        player.movement_mode = MovementMode(mode)

    follow = field("followEnabled")
    if follow is not _MISSING:
        player.follow_enabled = follow

    sample = field("lastSample")
    if sample is None:
        player.last_sample = None
    elif sample is not _MISSING:
        player.last_sample = PositionSample(
            lat=float(sample["lat"]), lng=float(sample["lng"]), accuracy=float(sample["accuracy"])
        )

    raw_overlay = field("overlay")
    entries = _decode_overlay([] if raw_overlay is _MISSING else raw_overlay, cap)

    return DecodedSave(version=version, player=player, entries=entries, defaulted=tuple(defaulted))


def _decode_overlay(raw: List[Any], cap: int) -> Tuple[Tuple[CellId, Token], ...]:
    decoded: Dict[CellId, Token] = {}
    skipped = 0
    for item in raw:
        if len(decoded) >= cap:
            logger.warning("Save overlay exceeds cap %d; dropping the rest", cap)
            break
        if not _ENTRY_VALIDATOR.is_valid(item) or not _finite(item):
            skipped += 1
            continue
        value = item[2]
        if value is not None and not is_token_value(int(value)):
            skipped += 1
            continue
        cell = CellId(int(item[0]), int(item[1]))
        decoded[cell] = EMPTY if value is None else Token(int(value))
    if skipped:
        logger.warning("Skipped %d malformed overlay entries", skipped)
    return tuple(decoded.items())


def _finite(value: Any) -> bool:
    """False if any number nested in ``value`` is NaN or infinite."""
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, (list, tuple)):
        return all(_finite(v) for v in value)
    if isinstance(value, Mapping):
        return all(_finite(v) for v in value.values())
    return True
