"""Backend protocols for display layout and pointer devices."""

from __future__ import annotations

from typing import Protocol

from edidrr.common.types import HardwareState, ScreenSize, ValuatorRange
from edidrr.layout.resolver import LayoutPlan
from edidrr.pointer.transform import Matrix3


class DisplayBackend(Protocol):
    """Abstract display backend interface."""

    def connection_establish(self) -> None:
        """
        Establish connection to display backend.

        Raises:
            BackendUnavailableError: If the backend or a required extension is missing.
        """

    def connection_close(self) -> None:
        """Close connection to display backend."""

    def hardware_enumerate(self) -> HardwareState:
        """
        Enumerate outputs and controllers.

        Returns:
            Outputs (connected or not) and controllers in backend order.
        """

    def layout_apply(self, plan: LayoutPlan) -> None:
        """
        Apply a resolved layout.

        Clears every controller in plan.deactivations before binding any
        controller in plan.assignments.

        Args:
            plan: Resolved layout plan with a non-empty canvas.
        """


class DeviceRangeBackend(Protocol):
    """Source of raw pointer device coordinate ranges."""

    def connection_establish(self) -> None:
        """Establish connection to the input system."""

    def connection_close(self) -> None:
        """Close connection to the input system."""

    def deviceValuatorRange_query(self, device: str) -> ValuatorRange:
        """
        Read the raw coordinate extent of a device.

        Args:
            device: Backend-specific device name or id.

        Returns:
            Valuator range for the x and y axes.
        """


class PointerBackend(DeviceRangeBackend, Protocol):
    """Abstract pointer device interface: range queries plus transform writes."""

    def deviceTransform_write(self, device: str, matrix: Matrix3, canvas: ScreenSize) -> bool:
        """
        Write a device-to-screen transform.

        Args:
            device: Backend-specific device name or id.
            matrix: Transform producing canvas pixels.
            canvas: Current virtual canvas size.

        Returns:
            True if the backend accepted the write.
        """
