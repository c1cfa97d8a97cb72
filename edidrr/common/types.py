"""Common types and data structures for edidrr"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Rotation(Enum):
    """Discrete output rotations (four-way only)"""
    NORMAL = "normal"
    LEFT = "left"
    RIGHT = "right"
    INVERTED = "inverted"

    @classmethod
    def fromToken_get(cls, token: str) -> Optional["Rotation"]:
        """
        Look up a rotation by its text token

        Args:
            token: Lowercase token such as 'left'

        Returns:
            Matching Rotation, or None if the token is not recognised
        """
        for rotation in cls:
            if rotation.value == token:
                return rotation
        return None


@dataclass(frozen=True)
class Position:
    """Top-left corner of an output in virtual-screen space"""
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class ScreenSize:
    """Virtual canvas dimensions"""
    width: int
    height: int

    def isEmpty_check(self) -> bool:
        """Check if either dimension is zero"""
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Mode:
    """
    Display mode (resolution and refresh rate)

    `mode_id` is the backend handle for the mode and is ignored by equality;
    tolerant matching lives in edidrr.layout.resolver.
    """
    width: int = 0
    height: int = 0
    rate: float = 0.0
    name: str = ""
    mode_id: Optional[int] = field(default=None, compare=False)

    def bandwidth_get(self) -> float:
        """Pixels per second scanned out by this mode"""
        return float(self.width) * float(self.height) * self.rate


@dataclass(frozen=True)
class Edid:
    """Decoded EDID identity of one physical display"""
    raw: bytes = b""
    digest: bytes = bytes(32)
    manufacturer_id: str = ""
    product_code: str = ""
    serial_number: str = ""
    name: str = ""

    @property
    def hex(self) -> str:
        """Identity key: lowercase hex of the content digest"""
        return self.digest.hex()

    def isAvailable_check(self) -> bool:
        """Check if this identity can be matched against saved layouts"""
        return any(self.digest)


@dataclass(frozen=True)
class DesiredState:
    """Desired geometry of one display"""
    mode: Mode = field(default_factory=Mode)
    position: Position = field(default_factory=Position)
    rotation: Rotation = Rotation.NORMAL
    is_primary: bool = False
    is_active: bool = False


@dataclass(frozen=True)
class Output:
    """
    Live output as reported by the display backend

    Only valid for the reconciliation pass that enumerated it.
    """
    name: str
    modes: tuple[Mode, ...] = ()
    mode_index: int = 0
    position: Position = field(default_factory=Position)
    rotation: Rotation = Rotation.NORMAL
    is_primary: bool = False
    is_active: bool = False
    is_connected: bool = False
    controller: Optional[int] = None
    edid: Edid = field(default_factory=Edid)
    output_id: Optional[int] = field(default=None, compare=False)

    @property
    def mode(self) -> Optional[Mode]:
        """Currently selected mode, or None if the output reports no modes"""
        if not self.modes:
            return None
        return self.modes[self.mode_index]


@dataclass(frozen=True)
class Controller:
    """Scan-out controller (CRTC) and whether a mode is bound to it"""
    controller_id: int
    mode_bound: bool


@dataclass(frozen=True)
class HardwareState:
    """Outputs and controllers from one backend enumeration"""
    outputs: tuple[Output, ...] = ()
    controllers: tuple[Controller, ...] = ()


@dataclass(frozen=True)
class ValuatorRange:
    """Raw coordinate extent of a pointer device"""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y
