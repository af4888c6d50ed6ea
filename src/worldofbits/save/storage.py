from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import PlatformDirs

from ..exceptions import PersistenceError
from ..utils.fs import atomic_write_json

logger = logging.getLogger(__name__)

APP_NAME = "WorldOfBits"
ENV_SAVE_DIR = "WOB_SAVE_DIR"
SLOT_FILENAME = "world.json"


def default_save_dir() -> Path:
    """Platform user-data directory for saves, or ``$WOB_SAVE_DIR``."""
    override = os.getenv(ENV_SAVE_DIR)
    if override:
        return Path(override).expanduser().resolve()
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    return Path(dirs.user_data_dir) / "saves"


class SaveSlot:
    """The single on-disk save slot.

    Writing overwrites; ``clear`` removes the file. The slot never
    interprets the blob beyond JSON, so a blob it reads back may still be
    rejected by the codec.
    """

    def __init__(self, save_dir: Optional[Path] = None) -> None:
        self.save_dir = Path(save_dir) if save_dir is not None else default_save_dir()
        self.path = self.save_dir / SLOT_FILENAME

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Optional[Any]:
        """Return the stored JSON value, or None if absent or unreadable."""
        if not self.path.exists():
            logger.debug("No save at %s", self.path)
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read save %s: %s", self.path, exc)
            return None

    def write(self, blob: Dict[str, Any]) -> None:
        """Write the blob atomically.

        Raises:
            PersistenceError: if the file cannot be written.
        """
        try:
            atomic_write_json(self.path, blob)
        except OSError as exc:
            raise PersistenceError(f"Could not write save {self.path}: {exc}") from exc
        logger.debug("Wrote save to %s", self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
            logger.info("Removed save %s", self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise PersistenceError(f"Could not remove save {self.path}: {exc}") from exc
