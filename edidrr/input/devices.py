"""evdev input device discovery and identity"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass

from evdev import InputDevice, ecodes

from edidrr.common.errors import DegenerateDeviceRangeError
from edidrr.common.types import ValuatorRange

logger = logging.getLogger(__name__)

DEFAULT_INPUT_ROOT = "/dev/input"


@dataclass(frozen=True)
class InputDeviceInfo:
    """Static identification data of one evdev node"""
    path: str
    name: str
    phys: str
    uniq: str
    bustype: int
    vendor: int
    product: int
    version: int


def inputDevicePaths_list(root: str = DEFAULT_INPUT_ROOT) -> list[str]:
    """
    List evdev event nodes

    Args:
        root: Directory holding the input device nodes

    Returns:
        Sorted paths of entries named event*
    """
    if not os.path.isdir(root):
        logger.warning(f"Input device directory {root} not found")
        return []
    return sorted(
        os.path.join(root, entry) for entry in os.listdir(root) if entry.startswith("event")
    )


def inputDeviceInfo_read(path: str) -> InputDeviceInfo:
    """
    Open an evdev node and read its identification data

    Args:
        path: Device node path

    Returns:
        InputDeviceInfo of the device

    Raises:
        OSError: If the node cannot be opened
    """
    device = InputDevice(path)
    try:
        return InputDeviceInfo(
            path=device.path,
            name=device.name or "",
            phys=device.phys or "",
            uniq=device.uniq or "",
            bustype=device.info.bustype,
            vendor=device.info.vendor,
            product=device.info.product,
            version=device.info.version,
        )
    finally:
        device.close()


def inputDevices_read(paths: list[str]) -> list[InputDeviceInfo]:
    """Read every readable device, skipping nodes that cannot be opened"""
    devices: list[InputDeviceInfo] = []
    for path in paths:
        try:
            devices.append(inputDeviceInfo_read(path))
        except OSError as e:
            logger.debug(f"Skipping {path}: {e}")
    return devices


def inputDevice_describe(info: InputDeviceInfo) -> str:
    """
    Render the stable description text of a device

    The text omits the device path and phys, which change between boots and
    ports.
    """
    return (
        f"Name: {info.name}\n"
        f"Uniq: {info.uniq}\n"
        f"Vendor ID: {info.vendor}\n"
        f"Product ID: {info.product}\n"
        f"Version: {info.version}\n"
    )


def inputDeviceIdentity_get(info: InputDeviceInfo) -> str:
    """SHA-256 hex digest of the device description"""
    return hashlib.sha256(inputDevice_describe(info).encode("utf-8")).hexdigest()


class EvdevRangeBackend:
    """Reads absolute-axis ranges directly from evdev nodes

    Each query opens and closes its node, so there is no connection to hold.
    """

    def connection_establish(self) -> None:
        pass

    def connection_close(self) -> None:
        pass

    def deviceValuatorRange_query(self, device: str) -> ValuatorRange:
        """
        Read the ABS_X/ABS_Y extent of a device

        Args:
            device: Device node path

        Returns:
            ValuatorRange of the absolute axes

        Raises:
            DegenerateDeviceRangeError: If the device has no absolute x/y axes
        """
        input_device = InputDevice(device)
        try:
            axes = input_device.capabilities(absinfo=False).get(ecodes.EV_ABS, [])
            if ecodes.ABS_X not in axes or ecodes.ABS_Y not in axes:
                raise DegenerateDeviceRangeError(f"Device {device} has no absolute x/y axes")
            abs_x = input_device.absinfo(ecodes.ABS_X)
            abs_y = input_device.absinfo(ecodes.ABS_Y)
        finally:
            input_device.close()
        return ValuatorRange(
            min_x=float(abs_x.min),
            max_x=float(abs_x.max),
            min_y=float(abs_y.min),
            max_y=float(abs_y.max),
        )
