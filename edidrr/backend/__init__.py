"""Backend abstraction layer for display layout and pointer devices."""

from edidrr.backend.base import DeviceRangeBackend, DisplayBackend, PointerBackend
from edidrr.backend.factory import displayBackend_create, pointerBackend_create

__all__ = [
    "DeviceRangeBackend",
    "DisplayBackend",
    "PointerBackend",
    "displayBackend_create",
    "pointerBackend_create",
]
