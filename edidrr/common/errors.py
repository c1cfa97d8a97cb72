"""Exception types raised by the reconciliation engine"""

from __future__ import annotations

from typing import Optional

from edidrr.common.types import Mode


class ReconcileError(Exception):
    """Base class for all edidrr errors"""


class ParseError(ReconcileError):
    """Malformed token in layout text; aborts the whole parse"""

    def __init__(self, message: str, line_number: int, field: Optional[str] = None) -> None:
        self.line_number = line_number
        self.field = field
        location = f"line {line_number}"
        if field is not None:
            location += f", field '{field}'"
        super().__init__(f"{location}: {message}")


class IdentityUnavailableError(ReconcileError):
    """EDID missing or too short; the output cannot be matched"""


class ModeNotFoundError(ReconcileError):
    """No supported mode matches the desired mode"""

    def __init__(self, output_name: str, mode: Mode) -> None:
        self.output_name = output_name
        self.mode = mode
        super().__init__(
            f"No mode matching {mode.width}x{mode.height}@{mode.rate:g} on output {output_name}"
        )


class NoUnusedControllerError(ReconcileError):
    """Every controller already has a mode bound"""

    def __init__(self, output_name: str) -> None:
        self.output_name = output_name
        super().__init__(f"No unused controller available for output {output_name}")


class LayoutEmptyError(ReconcileError):
    """Resolved layout would activate no output at all"""


class BackendUnavailableError(ReconcileError):
    """Display backend unreachable or required extension missing"""


class PointerTransformError(ReconcileError):
    """Pointer transform could not be applied"""


class TargetNotFoundError(PointerTransformError):
    """Target display is not among connected, identified outputs"""


class DegenerateDeviceRangeError(PointerTransformError):
    """Device coordinate extent is zero on an axis"""


class PropertyRejectedError(PointerTransformError):
    """Backend refused the transform property write"""
