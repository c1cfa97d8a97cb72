"""Reconciliation passes against a live display backend

Each public method is one pass: connect, enumerate once, compute, apply at
most once, disconnect. Nothing obtained from the backend outlives the pass.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from edidrr.backend.base import DeviceRangeBackend, DisplayBackend, PointerBackend
from edidrr.common.errors import PropertyRejectedError, TargetNotFoundError
from edidrr.common.types import HardwareState, Output
from edidrr.layout.codec import layoutConfig_serialize
from edidrr.layout.model import LayoutConfig, desiredState_fromOutput, layoutConfig_fromOutputs
from edidrr.layout.reconciler import output_disable, output_enable, output_toggle, reference_set
from edidrr.layout.resolver import LayoutPlan, LayoutResolver, screenSize_compute
from edidrr.pointer.transform import Matrix3, transform_build

logger = logging.getLogger(__name__)


class LayoutRuntime:
    """Runs layout passes through one display backend"""

    def __init__(self, backend: DisplayBackend, resolver: LayoutResolver) -> None:
        """
        Initialize runtime

        Args:
            backend: Display backend, not yet connected
            resolver: Layout resolver carrying the rate tolerance
        """
        self._backend = backend
        self._resolver = resolver

    def _hardware_read(self) -> HardwareState:
        self._backend.connection_establish()
        try:
            return self._backend.hardware_enumerate()
        finally:
            self._backend.connection_close()

    def snapshot_take(self) -> LayoutConfig:
        """
        Capture the live layout

        Returns:
            LayoutConfig of the active, identified outputs
        """
        return layoutConfig_fromOutputs(self._hardware_read().outputs)

    def layout_apply(self, config: LayoutConfig) -> LayoutPlan:
        """
        Resolve a layout against the live hardware and apply it

        Args:
            config: Desired layout

        Returns:
            The applied plan

        Raises:
            LayoutEmptyError: If nothing could be activated; the backend is
                left untouched
        """
        self._backend.connection_establish()
        try:
            hardware = self._backend.hardware_enumerate()
            return self._plan_apply(hardware, config)
        finally:
            self._backend.connection_close()

    def update_run(
        self,
        saved: LayoutConfig,
        toggles: Sequence[str] = (),
        enables: Sequence[str] = (),
        disables: Sequence[str] = (),
    ) -> LayoutConfig:
        """
        Merge a saved layout onto the live one, edit it and apply it

        Edits run in the order toggles, enables, disables.

        Args:
            saved: Saved layout providing geometry and aliases
            toggles: Names or identities to flip
            enables: Names or identities to turn on
            disables: Names or identities to turn off

        Returns:
            The edited layout that was applied
        """
        self._backend.connection_establish()
        try:
            hardware = self._backend.hardware_enumerate()
            config = layoutConfig_fromOutputs(hardware.outputs)
            reference_set(config, saved)
            for name in toggles:
                output_toggle(config, name)
            for name in enables:
                output_enable(config, name)
            for name in disables:
                output_disable(config, name)
            logger.info(f"Applying layout:\n{layoutConfig_serialize(config)}")
            self._plan_apply(hardware, config)
            return config
        finally:
            self._backend.connection_close()

    def _plan_apply(self, hardware: HardwareState, config: LayoutConfig) -> LayoutPlan:
        plan = self._resolver.plan_resolve(hardware, config.states_get())
        self._backend.layout_apply(plan)
        for failure in plan.failures:
            logger.warning(f"Output {failure.output_name} not applied: {failure.error}")
        return plan

    def outputNames_list(
        self, configs: Iterable[LayoutConfig], include_active: bool
    ) -> list[str]:
        """
        Collect the names a user can pass to the edit options

        For each identity the alias from the first config that names it is
        used. With include_active, derived names of live active outputs that
        no config names are added.

        Args:
            configs: Saved layouts
            include_active: Also enumerate the live outputs

        Returns:
            Sorted, de-duplicated names
        """
        name_by_identity: dict[str, str] = {}
        for config in configs:
            for identity in config.aliases_get().values():
                name = config.alias_get(identity)
                if name is not None:
                    name_by_identity.setdefault(identity, name)

        if include_active:
            for output in self._hardware_read().outputs:
                if not output.is_active or not output.edid.isAvailable_check():
                    continue
                name_by_identity.setdefault(output.edid.hex, output.edid.name)

        return sorted(set(name_by_identity.values()))


def targetOutput_find(outputs: Sequence[Output], target: str) -> Output:
    """
    Find an active display by connector name, derived name or identity

    Args:
        outputs: Live outputs
        target: Connector name, EDID derived name or digest hex

    Returns:
        Matching output

    Raises:
        TargetNotFoundError: If no connected, identified, active output matches
    """
    for output in outputs:
        if not (output.is_connected and output.is_active and output.edid.isAvailable_check()):
            continue
        if target in (output.name, output.edid.name, output.edid.hex):
            return output
    raise TargetNotFoundError(f"No active display named {target}")


class PointerMapper:
    """Binds a pointer device to the area of one display"""

    def __init__(
        self,
        display_backend: DisplayBackend,
        pointer_backend: PointerBackend,
        range_backend: Optional[DeviceRangeBackend] = None,
    ) -> None:
        """
        Initialize pointer mapper

        Args:
            display_backend: Backend enumerating the displays
            pointer_backend: Backend writing the device transform
            range_backend: Backend reading the device range, defaults to
                pointer_backend
        """
        self._display_backend = display_backend
        self._pointer_backend = pointer_backend
        self._range_backend = range_backend

    def pointer_map(self, device: str, target: str, range_device: Optional[str] = None) -> Matrix3:
        """
        Map a pointer device onto one display

        Args:
            device: Pointer device name or id
            target: Display connector name, derived name or identity
            range_device: Device to read the range from, defaults to device

        Returns:
            Pixel-space transform that was written

        Raises:
            TargetNotFoundError: If the target is not an active display
            DegenerateDeviceRangeError: If the device extent is empty
            PropertyRejectedError: If the backend refused the write
        """
        self._display_backend.connection_establish()
        try:
            outputs = self._display_backend.hardware_enumerate().outputs
        finally:
            self._display_backend.connection_close()

        output = targetOutput_find(outputs, target)
        canvas = screenSize_compute(
            desiredState_fromOutput(candidate) for candidate in outputs if candidate.is_active
        )

        range_backend = self._range_backend or self._pointer_backend
        range_backend.connection_establish()
        try:
            device_range = range_backend.deviceValuatorRange_query(range_device or device)
        finally:
            range_backend.connection_close()
        matrix = transform_build(desiredState_fromOutput(output), device_range)

        self._pointer_backend.connection_establish()
        try:
            written = self._pointer_backend.deviceTransform_write(device, matrix, canvas)
        finally:
            self._pointer_backend.connection_close()
        if not written:
            raise PropertyRejectedError(f"Device {device} rejected the transform property")
        logger.info(f"Mapped {device} to {output.name} ({output.edid.name})")
        return matrix
