from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .coords import CellId
from .events import EventBus, EventType
from .tokens import Token, TokenGenerator

logger = logging.getLogger(__name__)


class WorldOverlay:
    """Sparse record of player edits on top of the generated world.

    A cell absent from the overlay defers to the generator. A cell present
    with an empty token was emptied by the player, which is different from
    never having been touched. Entries keep insertion order; re-writing a
    cell keeps its original position.
    """

    def __init__(self, generator: TokenGenerator, bus: Optional[EventBus] = None) -> None:
        self._generator = generator
        self._bus = bus
        self._entries: Dict[CellId, Token] = {}

    @property
    def generator(self) -> TokenGenerator:
        return self._generator

    def get(self, cell: CellId) -> Token:
        """Overlay token if the cell was changed, else its base token."""
        token = self._entries.get(cell)
        if token is not None:
            return token
        return self._generator.base_token(cell)

    def set(self, cell: CellId, token: Token) -> None:
        self._entries[cell] = token
        logger.debug("Overlay %s <- %s", cell, token)
        if self._bus is not None:
            self._bus.publish(EventType.CELL_CHANGED, {"cell": cell, "token": token})

    def reset(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info("Overlay cleared (%d entries dropped)", count)
        if self._bus is not None:
            self._bus.publish(EventType.WORLD_RESET, {"dropped": count})

    def load(self, entries: Iterable[Tuple[CellId, Token]]) -> None:
        """Replace every entry without publishing events (used on restore)."""
        self._entries = dict(entries)
        logger.debug("Overlay loaded with %d entries", len(self._entries))

    def is_modified(self, cell: CellId) -> bool:
        return cell in self._entries

    def entries(self) -> List[Tuple[CellId, Token]]:
        return list(self._entries.items())

    def __contains__(self, cell: object) -> bool:
        return cell in self._entries

    def __iter__(self) -> Iterator[CellId]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
