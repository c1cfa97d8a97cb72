"""X11 XInput2 pointer backend: valuator ranges and transform matrices"""

from __future__ import annotations

import logging
import struct
from typing import Any, Optional

from Xlib import X
from Xlib import error as xerror
from Xlib.ext import xinput

from edidrr.common.errors import PointerTransformError
from edidrr.common.settings import Settings
from edidrr.common.types import ScreenSize, ValuatorRange
from edidrr.pointer.transform import Matrix3, canvasNormalized_get
from edidrr.x11.display import DisplayManager, XErrorTrap, text_decode

logger = logging.getLogger(__name__)

VALUATOR_X = 0
VALUATOR_Y = 1


def fp3232_toFloat(value: Any) -> float:
    """
    Convert an XInput FP3232 value to float

    python-xlib exposes FP3232 as a struct with integral/frac fields.
    """
    integral = getattr(value, "integral", None)
    if integral is None:
        return float(value)
    return integral + value.frac / float(1 << 32)


def matrixValues_pack(matrix: Matrix3) -> list[int]:
    """Encode matrix floats as CARD32 words for a format-32 FLOAT property"""
    return list(struct.unpack("9I", struct.pack("9f", *matrix.values_get())))


class X11PointerBackend:
    """Pointer backend backed by the XInput2 extension"""

    def __init__(self, display_name: Optional[str] = None) -> None:
        """
        Initialize XInput pointer backend

        Args:
            display_name: X11 display name, None for default
        """
        self._display_manager: DisplayManager = DisplayManager(
            display_name=display_name, required_extensions=("XInputExtension",)
        )

    def connection_establish(self) -> None:
        """Establish connection to the X11 display"""
        self._display_manager.connection_establish()

    def connection_close(self) -> None:
        """Close connection to the X11 display"""
        self._display_manager.connection_close()

    def device_find(self, device: str) -> Any:
        """
        Find an XInput device by numeric id or exact name

        Args:
            device: Device id or name

        Returns:
            XIDeviceInfo of the device

        Raises:
            PointerTransformError: If no device matches
        """
        display = self._display_manager.display_get()
        reply = display.xinput_query_device(xinput.AllDevices)
        for info in reply.devices:
            if str(info.deviceid) == device or text_decode(info.name) == device:
                return info
        raise PointerTransformError(f"Input device {device} not found")

    def deviceValuatorRange_query(self, device: str) -> ValuatorRange:
        """
        Read the x/y valuator ranges of a device

        Missing valuators read as an empty range.

        Args:
            device: Device id or name

        Returns:
            ValuatorRange of valuators 0 and 1
        """
        info = self.device_find(device)
        bounds: dict[int, tuple[float, float]] = {}
        for device_class in info.classes:
            if device_class.type != xinput.ValuatorClass:
                continue
            if device_class.number in (VALUATOR_X, VALUATOR_Y):
                bounds[device_class.number] = (
                    fp3232_toFloat(device_class.min),
                    fp3232_toFloat(device_class.max),
                )
        min_x, max_x = bounds.get(VALUATOR_X, (0.0, 0.0))
        min_y, max_y = bounds.get(VALUATOR_Y, (0.0, 0.0))
        return ValuatorRange(min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y)

    def deviceTransform_write(self, device: str, matrix: Matrix3, canvas: ScreenSize) -> bool:
        """
        Write the Coordinate Transformation Matrix property

        The write only happens if the current property is a format-32 FLOAT
        array.

        Args:
            device: Device id or name
            matrix: Transform producing canvas pixels
            canvas: Current virtual canvas size

        Returns:
            True if the property was written
        """
        display = self._display_manager.display_get()
        info = self.device_find(device)
        property_atom = self._display_manager.atom_get(Settings.COORDINATE_MATRIX_PROPERTY)
        float_atom = self._display_manager.atom_get(Settings.FLOAT_TYPE_ATOM)
        if property_atom == X.NONE or float_atom == X.NONE:
            logger.warning(f"Device {device} has no coordinate transformation matrix")
            return False

        try:
            current = display.xinput_get_device_property(
                info.deviceid, property_atom, X.AnyPropertyType, 0, 9
            )
        except xerror.XError as e:
            logger.warning(f"Failed to read transform property of {device}: {e}")
            return False

        value_format = getattr(current, "format", None)
        if isinstance(current.value, tuple) and len(current.value) == 2:
            value_format = current.value[0]
        if value_format != 32 or current.type != float_atom:
            logger.warning(
                f"Transform property of {device} has type {current.type} format {value_format}, "
                "expected FLOAT/32"
            )
            return False

        normalized = canvasNormalized_get(matrix, canvas)
        with XErrorTrap(display) as trap:
            display.xinput_change_device_property(
                info.deviceid,
                property_atom,
                float_atom,
                X.PropModeReplace,
                (32, matrixValues_pack(normalized)),
            )
        if trap.errors:
            logger.warning(f"Failed to write transform property of {device}: {trap.errors[0]}")
            return False
        logger.debug(f"Wrote transform {normalized.values_get()} to device {device}")
        return True
