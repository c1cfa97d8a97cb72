"""Resolution of a desired layout against live hardware

The resolver turns identity -> DesiredState into a LayoutPlan: which
controllers to clear, which controller drives which output in which mode,
the virtual canvas size and the primary output. It performs no backend I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from edidrr.common.errors import (
    LayoutEmptyError,
    ModeNotFoundError,
    NoUnusedControllerError,
    ReconcileError,
)
from edidrr.common.settings import Settings
from edidrr.common.types import (
    Controller,
    DesiredState,
    HardwareState,
    Mode,
    Output,
    Position,
    Rotation,
    ScreenSize,
)

logger = logging.getLogger(__name__)


def mode_matches(desired: Mode, candidate: Mode, tolerance: float) -> bool:
    """
    Check if a candidate mode satisfies a desired mode

    Width and height must be equal and the refresh rates must differ by
    strictly less than the tolerance. Mode names are not compared.

    Args:
        desired: Mode requested by the layout
        candidate: Mode reported by the hardware
        tolerance: Refresh-rate tolerance in Hz

    Returns:
        True if the candidate matches
    """
    return (
        desired.width == candidate.width
        and desired.height == candidate.height
        and abs(desired.rate - candidate.rate) < tolerance
    )


def modeIndex_find(
    output_name: str,
    modes: Sequence[Mode],
    desired: Mode,
    tolerance: float,
    strict: bool,
) -> int:
    """
    Find the supported mode that best matches a desired mode

    Among the matching modes the one with the closest refresh rate wins,
    the earliest on ties.

    Args:
        output_name: Output name for messages
        modes: Supported modes in hardware order
        desired: Mode to look for
        tolerance: Refresh-rate tolerance in Hz
        strict: Raise on no match (apply path) instead of falling back to
            index 0 (listing path)

    Returns:
        Index into modes

    Raises:
        ModeNotFoundError: If strict and nothing matches
    """
    best_index: Optional[int] = None
    for index, candidate in enumerate(modes):
        if not mode_matches(desired, candidate, tolerance):
            continue
        if best_index is None or abs(desired.rate - candidate.rate) < abs(
            desired.rate - modes[best_index].rate
        ):
            best_index = index
    if best_index is not None:
        return best_index
    if strict:
        raise ModeNotFoundError(output_name, desired)
    logger.warning(
        f"Mode {desired.width}x{desired.height}@{desired.rate:g} not in mode list of "
        f"{output_name}, using first mode"
    )
    return 0


def modeSmallest_find(modes: Iterable[Mode]) -> Optional[Mode]:
    """
    Find the mode with the lowest width * height * rate

    Args:
        modes: Candidate modes

    Returns:
        Smallest-bandwidth mode (first one on ties), or None if there are none
    """
    smallest: Optional[Mode] = None
    for mode in modes:
        if smallest is None or mode.bandwidth_get() < smallest.bandwidth_get():
            smallest = mode
    return smallest


def screenSize_compute(states: Iterable[DesiredState]) -> ScreenSize:
    """
    Compute the virtual canvas covering all active states

    Args:
        states: Desired states; inactive ones are ignored

    Returns:
        Component-wise maximum of the far corners, (0, 0) if none is active
    """
    max_x = 0
    max_y = 0
    for state in states:
        if not state.is_active:
            continue
        max_x = max(max_x, state.position.x + state.mode.width)
        max_y = max(max_y, state.position.y + state.mode.height)
    return ScreenSize(width=max_x, height=max_y)


@dataclass(frozen=True)
class ControllerClear:
    """Unbind a controller from an output that is being turned off"""
    controller_id: int
    output_name: str


@dataclass(frozen=True)
class ControllerAssignment:
    """Bind a controller to one output with a concrete hardware mode"""
    controller_id: int
    output_name: str
    output_id: Optional[int]
    identity: str
    mode: Mode
    position: Position
    rotation: Rotation
    is_primary: bool

    def state_get(self) -> DesiredState:
        """Desired state realised by this assignment"""
        return DesiredState(
            mode=self.mode,
            position=self.position,
            rotation=self.rotation,
            is_primary=self.is_primary,
            is_active=True,
        )


@dataclass(frozen=True)
class OutputFailure:
    """Output skipped during resolution"""
    output_name: str
    error: ReconcileError


@dataclass
class LayoutPlan:
    """
    Concrete, ordered instructions for one apply call

    Backends must execute all clears before any assignment.
    """
    deactivations: list[ControllerClear] = field(default_factory=list)
    assignments: list[ControllerAssignment] = field(default_factory=list)
    failures: list[OutputFailure] = field(default_factory=list)
    screen_size: ScreenSize = field(default_factory=lambda: ScreenSize(0, 0))
    primary_output: Optional[str] = None
    fallback_used: bool = False

    def states_get(self) -> dict[str, DesiredState]:
        """Resolved identity -> state for every assigned output"""
        return {assignment.identity: assignment.state_get() for assignment in self.assignments}


class _ControllerPool:
    """First-fit allocator over the controller list, in list order"""

    def __init__(self, controllers: Sequence[Controller]) -> None:
        self._order: list[int] = [controller.controller_id for controller in controllers]
        self._free: set[int] = {
            controller.controller_id for controller in controllers if not controller.mode_bound
        }

    def release(self, controller_id: int) -> None:
        self._free.add(controller_id)

    def claim(self, controller_id: int) -> None:
        self._free.discard(controller_id)

    def unused_take(self) -> Optional[int]:
        for controller_id in self._order:
            if controller_id in self._free:
                self._free.discard(controller_id)
                return controller_id
        return None


class LayoutResolver:
    """Resolves desired states against one hardware enumeration"""

    def __init__(self, tolerance: float = Settings.DEFAULT_RATE_TOLERANCE_HZ) -> None:
        """
        Initialize resolver

        Args:
            tolerance: Refresh-rate tolerance for mode matching (Hz)
        """
        self._tolerance = tolerance

    @property
    def tolerance(self) -> float:
        return self._tolerance

    def plan_resolve(
        self, hardware: HardwareState, desired: Mapping[str, DesiredState]
    ) -> LayoutPlan:
        """
        Produce the plan that realises a desired layout

        Outputs that are disconnected, unidentified, absent from the layout
        or inactive in it are cleared from their controller. Outputs whose
        mode is unsupported or that find no free controller are skipped and
        reported in plan.failures while the rest proceed. If nothing ends up
        active, the first connected output is turned on in its smallest mode.

        Args:
            hardware: Live outputs and controllers
            desired: identity -> DesiredState

        Returns:
            LayoutPlan with a non-empty canvas

        Raises:
            LayoutEmptyError: If not even the fallback could activate an output
        """
        plan = LayoutPlan()
        pool = _ControllerPool(hardware.controllers)
        pending: list[tuple[Output, str, DesiredState, Mode]] = []

        for output in hardware.outputs:
            want = self._desiredState_find(output, desired)
            if want is None:
                self._output_deactivate(plan, pool, output)
                continue
            try:
                index = modeIndex_find(output.name, output.modes, want.mode, self._tolerance, strict=True)
            except ModeNotFoundError as e:
                self._failure_record(plan, output.name, e)
                self._output_deactivate(plan, pool, output)
                continue
            pending.append((output, output.edid.hex, want, output.modes[index]))

        for output, identity, want, mode in pending:
            controller_id = self._controller_allocate(pool, output)
            if controller_id is None:
                self._failure_record(plan, output.name, NoUnusedControllerError(output.name))
                continue
            plan.assignments.append(
                ControllerAssignment(
                    controller_id=controller_id,
                    output_name=output.name,
                    output_id=output.output_id,
                    identity=identity,
                    mode=mode,
                    position=want.position,
                    rotation=want.rotation,
                    is_primary=want.is_primary,
                )
            )

        if not plan.assignments:
            self._fallback_activate(plan, pool, hardware.outputs)

        plan.screen_size = screenSize_compute(
            assignment.state_get() for assignment in plan.assignments
        )
        if not plan.assignments or plan.screen_size.isEmpty_check():
            raise LayoutEmptyError("No connected output could be activated")

        for assignment in plan.assignments:
            if assignment.is_primary:
                plan.primary_output = assignment.output_name
                break

        return plan

    def _desiredState_find(
        self, output: Output, desired: Mapping[str, DesiredState]
    ) -> Optional[DesiredState]:
        """Return the active desired state of a connected, identified output"""
        if not output.is_connected:
            return None
        if not output.edid.isAvailable_check():
            logger.warning(f"Output {output.name} has no usable EDID, treating as unmatched")
            return None
        want = desired.get(output.edid.hex)
        if want is None or not want.is_active:
            return None
        return want

    def _output_deactivate(self, plan: LayoutPlan, pool: _ControllerPool, output: Output) -> None:
        if output.controller is None:
            return
        plan.deactivations.append(ControllerClear(controller_id=output.controller, output_name=output.name))
        pool.release(output.controller)

    def _controller_allocate(self, pool: _ControllerPool, output: Output) -> Optional[int]:
        if output.controller is not None:
            pool.claim(output.controller)
            return output.controller
        return pool.unused_take()

    def _failure_record(self, plan: LayoutPlan, output_name: str, error: ReconcileError) -> None:
        logger.warning(f"Skipping output {output_name}: {error}")
        plan.failures.append(OutputFailure(output_name=output_name, error=error))

    def _fallback_activate(
        self, plan: LayoutPlan, pool: _ControllerPool, outputs: Sequence[Output]
    ) -> None:
        """Turn on the first connected output in its smallest-bandwidth mode"""
        for output in outputs:
            if not output.is_connected:
                continue
            mode = modeSmallest_find(output.modes)
            if mode is None:
                continue
            logger.warning(
                f"No active display in layout, activating {output.name} at "
                f"{mode.width}x{mode.height}@{mode.rate:g}"
            )
            plan.deactivations = [
                clear for clear in plan.deactivations if clear.output_name != output.name
            ]
            controller_id = self._controller_allocate(pool, output)
            if controller_id is None:
                self._failure_record(plan, output.name, NoUnusedControllerError(output.name))
                return
            plan.assignments.append(
                ControllerAssignment(
                    controller_id=controller_id,
                    output_name=output.name,
                    output_id=output.output_id,
                    identity=output.edid.hex,
                    mode=mode,
                    position=Position(0, 0),
                    rotation=Rotation.NORMAL,
                    is_primary=False,
                )
            )
            plan.fallback_used = True
            return
