from __future__ import annotations


class WorldOfBitsError(Exception):
    """Base class for errors raised by the world engine."""


class InvalidTokenError(WorldOfBitsError, ValueError):
    """Raised when a token value is not a power of two >= 2."""


class ConfigError(WorldOfBitsError):
    """Raised when a world configuration file holds invalid values."""


class SaveFormatError(WorldOfBitsError):
    """Raised when a save blob cannot be interpreted at all."""


class UnsupportedSaveVersion(SaveFormatError):
    """Raised when a save blob carries a missing or unknown format version."""


class PersistenceError(WorldOfBitsError):
    """Raised when the save slot cannot be written or removed."""


class PositionUnavailableError(WorldOfBitsError):
    """Raised (or reported) when a position source cannot produce a sample."""
