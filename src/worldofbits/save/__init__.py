"""
Save system for World of Bits.

``codec`` converts world state to and from the versioned blob, ``storage``
keeps the single save slot on disk and ``autosave`` debounces writes.
"""
from .autosave import DebouncedSaver, ManualTimers, ThreadingTimers
from .codec import CURRENT_VERSION, DecodedSave, decode, encode
from .storage import SaveSlot, default_save_dir

__all__ = [
    "CURRENT_VERSION",
    "DebouncedSaver",
    "DecodedSave",
    "ManualTimers",
    "SaveSlot",
    "ThreadingTimers",
    "decode",
    "default_save_dir",
    "encode",
]
