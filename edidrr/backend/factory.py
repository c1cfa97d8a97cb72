"""Backend factory functions."""

from __future__ import annotations

from typing import Optional

from edidrr.backend.base import DisplayBackend, PointerBackend


def displayBackend_create(
    backend_name: str,
    display_name: Optional[str],
    pixels_per_millimeter: int,
) -> DisplayBackend:
    """
    Create the display layout backend.

    Args:
        backend_name: Backend identifier (e.g., "x11")
        display_name: Display name (backend-specific)
        pixels_per_millimeter: Ratio used to report the physical screen size

    Returns:
        DisplayBackend instance
    """
    backend = backend_name.lower()

    if backend == "x11":
        from edidrr.x11.randr import X11DisplayBackend

        return X11DisplayBackend(
            display_name=display_name, pixels_per_millimeter=pixels_per_millimeter
        )

    raise ValueError(f"Unsupported backend '{backend_name}'. Supported: x11.")


def pointerBackend_create(backend_name: str, display_name: Optional[str]) -> PointerBackend:
    """
    Create the pointer device backend.

    Args:
        backend_name: Backend identifier ("x11" for XInput devices)
        display_name: Display name (backend-specific)

    Returns:
        PointerBackend instance
    """
    backend = backend_name.lower()

    if backend == "x11":
        from edidrr.x11.xinput import X11PointerBackend

        return X11PointerBackend(display_name=display_name)

    raise ValueError(f"Unsupported backend '{backend_name}'. Supported: x11.")
