from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from importlib.resources import files as resource_files

import yaml

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorldConfig:
    """Tunables for one world. Defaults match the embedded world.yaml."""

    cell_size: float = 1e-4
    interaction_radius: int = 3
    goal: int = 32
    start_lat: float = 36.997936938057016
    start_lng: float = -122.05703507501151
    token_salt: str = "token"
    world_seed: str = ""
    overlay_cap: int = 10_000
    autosave_delay: float = 0.4
    save_dir: Optional[Path] = None
    snap_timeout: float = 10.0
    view_radius: int = 8
    max_render_cells: int = 20_000

    def __post_init__(self) -> None:
        if not (self.cell_size > 0 and math.isfinite(self.cell_size)):
            raise ConfigError(f"cell_size must be positive, got {self.cell_size!r}")
        for name in ("interaction_radius", "view_radius"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        for name in ("goal", "overlay_cap", "max_render_cells"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1")
        for name in ("autosave_delay", "snap_timeout"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")

    def replace(self, **changes: Any) -> "WorldConfig":
        return dataclasses.replace(self, **changes)


def _coerce(name: str, field_type: Any, value: Any) -> Any:
    if name == "save_dir":
        return None if value is None else Path(str(value)).expanduser()
    if field_type not in (float, int, str):
        return value
    if isinstance(value, bool) or value is None:
        raise ConfigError(f"Invalid value for {name}: {value!r}")
    try:
        if field_type is int and isinstance(value, float) and not value.is_integer():
            raise ValueError("not an integer")
        return field_type(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from exc


_FIELD_TYPES = {
    "cell_size": float,
    "interaction_radius": int,
    "goal": int,
    "start_lat": float,
    "start_lng": float,
    "token_salt": str,
    "world_seed": str,
    "overlay_cap": int,
    "autosave_delay": float,
    "save_dir": Path,
    "snap_timeout": float,
    "view_radius": int,
    "max_render_cells": int,
}


def config_from_dict(raw: Dict[str, Any], base: Optional[WorldConfig] = None) -> WorldConfig:
    """Overlay ``raw`` onto ``base`` (defaults when None)."""
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        field_type = _FIELD_TYPES.get(key)
        if field_type is None:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        values[key] = _coerce(key, field_type, value)
    return dataclasses.replace(base or WorldConfig(), **values)


def _read_yaml(text: str, origin: str) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {origin}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{origin} must contain a mapping")
    return raw


def load_world_config(path: Optional[str] = None) -> WorldConfig:
    """Load world configuration from YAML.

    The embedded default resource worldofbits/config/world.yaml is always
    read first; if ``path`` is given its keys override the defaults.
    """
    data = resource_files("worldofbits.config").joinpath("world.yaml").read_text(encoding="utf-8")
    cfg = config_from_dict(_read_yaml(data, "world.yaml"))
    logger.debug("Loaded embedded world config resource")

    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            override = f.read()
        cfg = config_from_dict(_read_yaml(override, path), base=cfg)
        logger.debug("Loaded world config overrides from path: %s", path)

    logger.info(
        "World config: cell_size=%g radius=%d goal=%d seed=%r",
        cfg.cell_size, cfg.interaction_radius, cfg.goal, cfg.world_seed,
    )
    return cfg
