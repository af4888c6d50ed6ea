from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Optional

from .coords import CellId
from .exceptions import InvalidTokenError


# Upper edges of the bands in [0, 1) mapping a cell's draw to its base token.
EMPTY_BELOW = 0.55
TWO_BELOW = 0.85
FOUR_BELOW = 0.97

_UNIT_SCALE = float(1 << 53)


def is_token_value(value: Any) -> bool:
    """True if ``value`` is an int power of two >= 2 (bools excluded)."""
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and value >= 2
        and value & (value - 1) == 0
    )


@dataclass(frozen=True)
class Token:
    """Either an empty cell/hand or a numeric token.

    ``Token()`` (also available as ``EMPTY``) is empty; ``Token(8)`` holds 8.
    """

    value: Optional[int] = None

    def __post_init__(self) -> None:
        if self.value is not None and not is_token_value(self.value):
            raise InvalidTokenError(f"Token value must be a power of two >= 2, got {self.value!r}")

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def doubled(self) -> "Token":
        if self.value is None:
            raise InvalidTokenError("Cannot double an empty token")
        return Token(self.value * 2)

    def to_json(self) -> Optional[int]:
        return self.value

    @classmethod
    def from_json(cls, raw: Optional[int]) -> "Token":
        return cls(raw)

    def __str__(self) -> str:
        return "None" if self.value is None else str(self.value)


EMPTY = Token()


def _to_stable_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class TokenGenerator:
    """Deterministic base token for every cell of the world.

    The draw for a cell is a BLAKE2b digest of the cell coordinates, the
    salt and the world seed, so it never depends on call order and never
    changes for the lifetime of a world. Nothing is stored; the whole
    infinite world is this function.
    """

    salt: str = "token"
    world_seed: str = ""

    def draw(self, cell: CellId) -> float:
        """Reproducible pseudo-random number in [0, 1) for ``cell``."""
        payload = {
            "cell": [cell.row, cell.col],
            "salt": self.salt,
            "seed": self.world_seed,
        }
        digest = hashlib.blake2b(_to_stable_json(payload).encode("utf-8"), digest_size=8).digest()
        # keep 53 bits so the quotient is exact and strictly below 1.0
        return (int.from_bytes(digest, "big", signed=False) >> 11) / _UNIT_SCALE

    def base_token(self, cell: CellId) -> Token:
        r = self.draw(cell)
        if r < EMPTY_BELOW:
            return EMPTY
        if r < TWO_BELOW:
            return Token(2)
        if r < FOUR_BELOW:
            return Token(4)
        return Token(8)


__all__ = ["Token", "EMPTY", "TokenGenerator", "is_token_value"]
