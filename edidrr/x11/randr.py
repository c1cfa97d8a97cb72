"""X11 RandR display backend: output enumeration and layout apply"""

from __future__ import annotations

import logging
from typing import Any, Optional

from Xlib import X
from Xlib import error as xerror
from Xlib.ext import randr

from edidrr.common.settings import Settings
from edidrr.common.types import (
    Controller,
    Edid,
    HardwareState,
    Mode,
    Output,
    Position,
    Rotation,
    ScreenSize,
)
from edidrr.identity.edid import edid_decode
from edidrr.layout.resolver import LayoutPlan, modeIndex_find
from edidrr.x11.display import DisplayManager, XErrorTrap, text_decode

logger = logging.getLogger(__name__)

# RandR rotation bits; reflection bits are masked off
_ROTATION_FROM_X11: dict[int, Rotation] = {
    randr.Rotate_0: Rotation.NORMAL,
    randr.Rotate_90: Rotation.RIGHT,
    randr.Rotate_180: Rotation.INVERTED,
    randr.Rotate_270: Rotation.LEFT,
}
_ROTATION_TO_X11: dict[Rotation, int] = {
    rotation: value for value, rotation in _ROTATION_FROM_X11.items()
}
_ROTATION_MASK = randr.Rotate_0 | randr.Rotate_90 | randr.Rotate_180 | randr.Rotate_270


def modeRate_compute(dot_clock: int, h_total: int, v_total: int) -> float:
    """
    Refresh rate of a mode line in Hz

    Args:
        dot_clock: Pixel clock in Hz
        h_total: Total horizontal pixels per line
        v_total: Total lines per frame

    Returns:
        Refresh rate, or 0.0 if the totals are zero
    """
    if h_total == 0 or v_total == 0:
        return 0.0
    return dot_clock / (h_total * v_total)


def modeTable_build(resources: Any) -> dict[int, Mode]:
    """
    Decode the screen-resources mode table

    Args:
        resources: GetScreenResources reply

    Returns:
        mode id -> Mode
    """
    names = text_decode(getattr(resources, "mode_names", ""))
    table: dict[int, Mode] = {}
    offset = 0
    for info in resources.modes:
        name = names[offset:offset + info.name_length]
        offset += info.name_length
        table[info.id] = Mode(
            width=info.width,
            height=info.height,
            rate=modeRate_compute(info.dot_clock, info.h_total, info.v_total),
            name=name,
            mode_id=info.id,
        )
    return table


def propertyBytes_get(value: Any) -> bytes:
    """
    Normalise a property value to bytes

    Depending on the python-xlib version the value is bytes, a sequence of
    ints, or a (format, data) pair.
    """
    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], int):
        value = value[1]
    if isinstance(value, str):
        return value.encode("latin-1")
    return bytes(value)


class X11DisplayBackend:
    """Display backend backed by the X11 RandR extension"""

    def __init__(
        self,
        display_name: Optional[str] = None,
        pixels_per_millimeter: int = Settings.DEFAULT_PIXELS_PER_MILLIMETER,
    ) -> None:
        """
        Initialize X11 display backend

        Args:
            display_name: X11 display name, None for default
            pixels_per_millimeter: Ratio used for the physical screen size
        """
        self._display_manager: DisplayManager = DisplayManager(
            display_name=display_name, required_extensions=("RANDR",)
        )
        self._pixels_per_millimeter: int = pixels_per_millimeter

    def connection_establish(self) -> None:
        """Establish connection to the X11 display"""
        self._display_manager.connection_establish()

    def connection_close(self) -> None:
        """Close connection to the X11 display"""
        self._display_manager.connection_close()

    def __enter__(self) -> "X11DisplayBackend":
        self.connection_establish()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.connection_close()

    def hardware_enumerate(self) -> HardwareState:
        """
        Enumerate RandR outputs and CRTCs

        Returns:
            HardwareState in server order
        """
        display = self._display_manager.display_get()
        root = display.screen().root
        resources = root.xrandr_get_screen_resources()
        timestamp = resources.config_timestamp
        primary_output = root.xrandr_get_output_primary().output
        mode_table = modeTable_build(resources)

        crtc_infos: dict[int, Any] = {}
        controllers: list[Controller] = []
        for crtc in resources.crtcs:
            crtc_info = display.xrandr_get_crtc_info(crtc, timestamp)
            crtc_infos[crtc] = crtc_info
            controllers.append(Controller(controller_id=crtc, mode_bound=crtc_info.mode != X.NONE))

        outputs: list[Output] = []
        for output_id in resources.outputs:
            output_info = display.xrandr_get_output_info(output_id, timestamp)
            outputs.append(
                self._output_read(output_id, output_info, mode_table, crtc_infos, primary_output)
            )

        return HardwareState(outputs=tuple(outputs), controllers=tuple(controllers))

    def _output_read(
        self,
        output_id: int,
        output_info: Any,
        mode_table: dict[int, Mode],
        crtc_infos: dict[int, Any],
        primary_output: int,
    ) -> Output:
        """Translate one RandR output into an Output"""
        name = text_decode(output_info.name)
        is_primary = output_id == primary_output
        controller = output_info.crtc if output_info.crtc != X.NONE else None

        if output_info.connection != randr.Connected:
            return Output(name=name, is_primary=is_primary, controller=controller, output_id=output_id)

        modes: list[Mode] = []
        for mode_id in output_info.modes:
            mode = mode_table.get(mode_id)
            if mode is None:
                logger.warning(f"Mode ID {mode_id} not found in resources for output {name}")
                continue
            modes.append(mode)

        mode_index = 0
        position = Position(0, 0)
        rotation = Rotation.NORMAL
        is_active = False
        crtc_info = crtc_infos.get(output_info.crtc) if controller is not None else None
        if crtc_info is not None and crtc_info.mode != X.NONE:
            is_active = True
            position = Position(crtc_info.x, crtc_info.y)
            rotation = self._rotation_read(name, crtc_info.rotation)
            mode_index = self._modeIndex_read(name, modes, mode_table, crtc_info.mode)

        return Output(
            name=name,
            modes=tuple(modes),
            mode_index=mode_index,
            position=position,
            rotation=rotation,
            is_primary=is_primary,
            is_active=is_active,
            is_connected=True,
            controller=controller,
            edid=self._edid_read(output_id),
            output_id=output_id,
        )

    def _modeIndex_read(
        self, output_name: str, modes: list[Mode], mode_table: dict[int, Mode], mode_id: int
    ) -> int:
        """Index of the CRTC mode in the output mode list, tolerant of misses"""
        for index, mode in enumerate(modes):
            if mode.mode_id == mode_id:
                return index
        current = mode_table.get(mode_id)
        if current is None or not modes:
            logger.warning(f"Mode ID {mode_id} not found in resources for output {output_name}")
            return 0
        return modeIndex_find(
            output_name, modes, current, Settings.DEFAULT_RATE_TOLERANCE_HZ, strict=False
        )

    def _rotation_read(self, output_name: str, value: int) -> Rotation:
        rotation = _ROTATION_FROM_X11.get(value & _ROTATION_MASK)
        if rotation is None:
            logger.warning(f"Unknown rotation value {value} for output {output_name}")
            return Rotation.NORMAL
        return rotation

    def _edid_read(self, output_id: int) -> Edid:
        """
        Read and decode the EDID output property

        Returns:
            Decoded Edid, empty if the property is missing or unreadable
        """
        display = self._display_manager.display_get()
        edid_atom = self._display_manager.atom_get("EDID")
        if edid_atom == X.NONE:
            logger.warning("EDID atom not found")
            return Edid()

        long_length = Settings.EDID_FETCH_LONGS
        try:
            reply = display.xrandr_get_output_property(
                output_id, edid_atom, X.AnyPropertyType, 0, long_length
            )
            if reply.bytes_after:
                long_length += (reply.bytes_after + 3) // 4
                reply = display.xrandr_get_output_property(
                    output_id, edid_atom, X.AnyPropertyType, 0, long_length
                )
        except xerror.XError as e:
            logger.warning(f"Failed to get EDID property: {e}")
            return Edid()

        raw = propertyBytes_get(reply.value)
        if not raw:
            logger.warning(f"No EDID available for output {output_id}")
        return edid_decode(raw)

    def layout_apply(self, plan: LayoutPlan) -> None:
        """
        Apply a resolved layout

        Order: clear controllers being turned off, grow the screen to cover
        both the current and the new canvas, bind controllers, shrink the
        screen to the new canvas, set the primary output. A failing clear or
        binding is logged and skipped; earlier changes are not rolled back.

        Args:
            plan: Resolved layout plan
        """
        display = self._display_manager.display_get()
        root = display.screen().root
        timestamp = root.xrandr_get_screen_resources().config_timestamp

        for clear in plan.deactivations:
            logger.debug(f"Clearing controller {clear.controller_id} of {clear.output_name}")
            self._crtcConfig_set(
                display, clear.controller_id, timestamp, 0, 0, X.NONE, randr.Rotate_0, [],
                clear.output_name,
            )

        # Controllers still bound must fit the screen at every step
        geometry = root.get_geometry()
        current = ScreenSize(geometry.width, geometry.height)
        target = plan.screen_size
        interim = ScreenSize(max(current.width, target.width), max(current.height, target.height))
        if interim != current:
            self._screenSize_set(display, root, interim)

        primary_id: Optional[int] = None
        for assignment in plan.assignments:
            logger.debug(
                f"Binding controller {assignment.controller_id} to {assignment.output_name}: "
                f"{assignment.mode.width}x{assignment.mode.height}+"
                f"{assignment.position.x}+{assignment.position.y} {assignment.rotation.value}"
            )
            bound = self._crtcConfig_set(
                display,
                assignment.controller_id,
                timestamp,
                assignment.position.x,
                assignment.position.y,
                assignment.mode.mode_id,
                _ROTATION_TO_X11[assignment.rotation],
                [assignment.output_id],
                assignment.output_name,
            )
            if bound and assignment.output_name == plan.primary_output:
                primary_id = assignment.output_id

        if target != interim:
            self._screenSize_set(display, root, target)
        if primary_id is not None:
            root.xrandr_set_output_primary(primary_id)
        display.sync()

    def _crtcConfig_set(
        self,
        display: Any,
        controller_id: int,
        timestamp: int,
        x: int,
        y: int,
        mode_id: int,
        rotation: int,
        output_ids: list[int],
        output_name: str,
    ) -> bool:
        """Send one SetCrtcConfig; return False if the server refused it"""
        try:
            reply = display.xrandr_set_crtc_config(
                controller_id, timestamp, x, y, mode_id, rotation, output_ids
            )
        except xerror.XError as e:
            logger.error(f"Failed to configure output {output_name}: {e}")
            return False
        if reply.status != randr.SetConfigSuccess:
            logger.error(
                f"Failed to configure output {output_name}: "
                f"controller {controller_id} returned status {reply.status}"
            )
            return False
        return True

    def _screenSize_set(self, display: Any, root: Any, size: ScreenSize) -> bool:
        """Resize the screen; return False if the server reported an error"""
        logger.debug(f"Setting screen size {size.width}x{size.height}")
        with XErrorTrap(display) as trap:
            root.xrandr_set_screen_size(
                size.width,
                size.height,
                size.width // self._pixels_per_millimeter,
                size.height // self._pixels_per_millimeter,
            )
        if trap.errors:
            logger.error(f"Failed to set screen size {size.width}x{size.height}: {trap.errors[0]}")
            return False
        return True
