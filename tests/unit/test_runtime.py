"""Unit tests for reconciliation passes and pointer mapping"""

from __future__ import annotations

import pytest

from conftest import edidBlob_build

from edidrr.common.errors import LayoutEmptyError, PropertyRejectedError, TargetNotFoundError
from edidrr.common.types import (
    Controller,
    DesiredState,
    HardwareState,
    Mode,
    Output,
    Position,
    Rotation,
    ScreenSize,
    ValuatorRange,
)
from edidrr.identity.edid import edid_decode
from edidrr.layout.codec import layoutConfig_parse
from edidrr.layout.resolver import LayoutPlan, LayoutResolver
from edidrr.pointer.transform import Matrix3
from edidrr.runtime import LayoutRuntime, PointerMapper, targetOutput_find

MODE_1080 = Mode(1920, 1080, 60.0, mode_id=1)
MODE_1024 = Mode(1280, 1024, 60.02, mode_id=2)

EDID_LEFT = edid_decode(edidBlob_build(serial=1))
EDID_RIGHT = edid_decode(edidBlob_build(serial=2))


def _hardware(right_active: bool = False) -> HardwareState:
    left = Output(
        name="DP-1",
        modes=(MODE_1080, MODE_1024),
        is_active=True,
        is_connected=True,
        is_primary=True,
        controller=10,
        edid=EDID_LEFT,
        output_id=1,
    )
    right = Output(
        name="HDMI-1",
        modes=(MODE_1024,),
        mode_index=0,
        position=Position(1920, 0) if right_active else Position(0, 0),
        is_active=right_active,
        is_connected=True,
        controller=11 if right_active else None,
        edid=EDID_RIGHT,
        output_id=2,
    )
    return HardwareState(
        outputs=(left, right),
        controllers=(Controller(10, True), Controller(11, right_active)),
    )


class _FakeDisplayBackend:
    """Fake display backend recording connections and applied plans."""

    def __init__(self, hardware: HardwareState) -> None:
        """Initialize fake backend state."""
        self.hardware = hardware
        self.connected: bool = False
        self.connect_calls: int = 0
        self.enumerate_calls: int = 0
        self.plans: list[LayoutPlan] = []

    def connection_establish(self) -> None:
        """Record connection."""
        self.connected = True
        self.connect_calls += 1

    def connection_close(self) -> None:
        """Record disconnection."""
        self.connected = False

    def hardware_enumerate(self) -> HardwareState:
        """Return canned hardware."""
        assert self.connected
        self.enumerate_calls += 1
        return self.hardware

    def layout_apply(self, plan: LayoutPlan) -> None:
        """Record applied plan."""
        assert self.connected
        self.plans.append(plan)


class _FakeRangeBackend:
    """Fake range-only backend with a fixed tablet range."""

    def __init__(self) -> None:
        """Initialize fake range backend."""
        self.queried: list[str] = []

    def connection_establish(self) -> None:
        """No connection needed."""

    def connection_close(self) -> None:
        """No connection needed."""

    def deviceValuatorRange_query(self, device: str) -> ValuatorRange:
        """Return a fixed tablet range."""
        self.queried.append(device)
        return ValuatorRange(min_x=0.0, max_x=1000.0, min_y=0.0, max_y=1000.0)


class _FakePointerBackend(_FakeRangeBackend):
    """Fake pointer backend that also records transform writes."""

    def __init__(self, accept: bool = True) -> None:
        """Initialize fake pointer backend."""
        super().__init__()
        self.accept = accept
        self.writes: list[tuple[str, Matrix3, ScreenSize]] = []

    def deviceTransform_write(self, device: str, matrix: Matrix3, canvas: ScreenSize) -> bool:
        """Record the write."""
        self.writes.append((device, matrix, canvas))
        return self.accept


class TestLayoutRuntime:
    """Tests for LayoutRuntime passes."""

    def test_snapshot_take(self) -> None:
        """Snapshot captures active outputs only and disconnects."""
        backend = _FakeDisplayBackend(_hardware())
        config = LayoutRuntime(backend, LayoutResolver()).snapshot_take()

        assert list(config) == [EDID_LEFT.hex]
        assert config.identity_resolve(EDID_LEFT.name) == EDID_LEFT.hex
        assert backend.connected is False

    def test_layout_apply(self) -> None:
        """Applying a saved layout issues exactly one plan."""
        backend = _FakeDisplayBackend(_hardware())
        saved = layoutConfig_parse(
            f"{EDID_LEFT.hex} x=0 y=0 width=1920 height=1080 rate=60.0 rotation=normal primary\n"
            f"{EDID_RIGHT.hex} x=1920 y=0 width=1280 height=1024 rate=60.02 rotation=left\n"
        )

        plan = LayoutRuntime(backend, LayoutResolver()).layout_apply(saved)

        assert backend.plans == [plan]
        assert [a.controller_id for a in plan.assignments] == [10, 11]
        assert plan.assignments[1].rotation == Rotation.LEFT
        assert plan.screen_size == ScreenSize(3200, 1080)
        assert backend.enumerate_calls == 1
        assert backend.connected is False

    def test_layout_apply_empty_stops_before_backend(self) -> None:
        """An unsatisfiable layout never reaches the backend."""
        hardware = HardwareState(outputs=(Output(name="VGA-1"),), controllers=(Controller(10, False),))
        backend = _FakeDisplayBackend(hardware)

        with pytest.raises(LayoutEmptyError):
            LayoutRuntime(backend, LayoutResolver()).layout_apply(layoutConfig_parse(""))

        assert backend.plans == []
        assert backend.connected is False

    def test_update_run_enables_saved_output(self) -> None:
        """Enabling a saved, currently-off display uses the saved geometry."""
        backend = _FakeDisplayBackend(_hardware(right_active=False))
        saved = layoutConfig_parse(
            f"{EDID_RIGHT.hex} x=1920 y=0 width=1280 height=1024 rate=60.02 name=right rotation=normal\n"
        )

        config = LayoutRuntime(backend, LayoutResolver()).update_run(saved, enables=["right"])

        assert config.state_get("right").is_active is True
        plan = backend.plans[0]
        assert [(a.output_name, a.controller_id) for a in plan.assignments] == [("DP-1", 10), ("HDMI-1", 11)]
        assert plan.assignments[1].position == Position(1920, 0)
        assert backend.enumerate_calls == 1

    def test_update_run_toggle_off(self) -> None:
        """Toggling an active display off clears its controller."""
        backend = _FakeDisplayBackend(_hardware(right_active=True))

        config = LayoutRuntime(backend, LayoutResolver()).update_run(
            layoutConfig_parse(""), toggles=[EDID_RIGHT.name]
        )

        assert config.state_get(EDID_RIGHT.name).is_active is False
        plan = backend.plans[0]
        assert [clear.output_name for clear in plan.deactivations] == ["HDMI-1"]
        assert plan.screen_size == ScreenSize(1920, 1080)

    def test_update_run_edit_order(self) -> None:
        """Disables run after toggles and enables."""
        backend = _FakeDisplayBackend(_hardware(right_active=True))

        config = LayoutRuntime(backend, LayoutResolver()).update_run(
            layoutConfig_parse(""),
            toggles=[EDID_LEFT.name],
            enables=[EDID_LEFT.name],
            disables=[EDID_LEFT.name],
        )

        assert config.state_get(EDID_LEFT.name).is_active is False

    def test_outputNames_list(self) -> None:
        """Names come from configs first, then from active outputs."""
        backend = _FakeDisplayBackend(_hardware(right_active=True))
        first = layoutConfig_parse(f"{EDID_LEFT.hex} name=office\n")
        second = layoutConfig_parse(f"{EDID_LEFT.hex} name=ignored\nother name=beamer\n")
        runtime = LayoutRuntime(backend, LayoutResolver())

        assert runtime.outputNames_list([first, second], include_active=False) == ["beamer", "office"]
        assert backend.connect_calls == 0
        assert runtime.outputNames_list([first], include_active=True) == sorted(["office", EDID_RIGHT.name])


class TestPointerMapper:
    """Tests for PointerMapper.pointer_map."""

    def test_targetOutput_find_by_any_name(self) -> None:
        """Connector name, derived name and digest all resolve."""
        outputs = _hardware().outputs
        for target in ("DP-1", EDID_LEFT.name, EDID_LEFT.hex):
            assert targetOutput_find(outputs, target).name == "DP-1"

    def test_targetOutput_find_inactive_raises(self) -> None:
        """Inactive displays cannot be targeted."""
        with pytest.raises(TargetNotFoundError):
            targetOutput_find(_hardware(right_active=False).outputs, "HDMI-1")

    def test_pointer_map_writes_transform(self) -> None:
        """The transform targets the display within the whole canvas."""
        pointer = _FakePointerBackend()
        mapper = PointerMapper(_FakeDisplayBackend(_hardware(right_active=True)), pointer)

        matrix = mapper.pointer_map("Wacom Pen", "HDMI-1")

        device, written, canvas = pointer.writes[0]
        assert device == "Wacom Pen"
        assert written == matrix
        assert canvas == ScreenSize(3200, 1080)
        assert matrix.point_apply(0, 0) == pytest.approx((1920.0, 0.0))
        assert matrix.point_apply(1, 1) == pytest.approx((3200.0, 1024.0))

    def test_pointer_map_range_backend(self) -> None:
        """A range-only backend is queried with the range device."""
        pointer = _FakePointerBackend()
        ranges = _FakeRangeBackend()
        mapper = PointerMapper(_FakeDisplayBackend(_hardware()), pointer, ranges)

        mapper.pointer_map("12", "DP-1", "/dev/input/event5")

        assert ranges.queried == ["/dev/input/event5"]
        assert pointer.queried == []
        assert not hasattr(ranges, "deviceTransform_write")
        assert len(pointer.writes) == 1

    def test_pointer_map_rejected(self) -> None:
        """A refused write raises PropertyRejectedError."""
        mapper = PointerMapper(_FakeDisplayBackend(_hardware()), _FakePointerBackend(accept=False))

        with pytest.raises(PropertyRejectedError):
            mapper.pointer_map("Wacom Pen", "DP-1")

    def test_pointer_map_unknown_target(self) -> None:
        """No write happens for an unknown target."""
        pointer = _FakePointerBackend()
        mapper = PointerMapper(_FakeDisplayBackend(_hardware()), pointer)

        with pytest.raises(TargetNotFoundError):
            mapper.pointer_map("Wacom Pen", "nowhere")
        assert pointer.writes == []


class TestDesiredStateOnPlan:
    """Resolved states match the applied assignments."""

    def test_plan_states(self) -> None:
        """The plan reports the state it realises for each identity."""
        backend = _FakeDisplayBackend(_hardware())
        saved = layoutConfig_parse(f"{EDID_LEFT.hex} width=1280 height=1024 rate=60.0\n")

        plan = LayoutRuntime(backend, LayoutResolver()).layout_apply(saved)

        assert plan.states_get()[EDID_LEFT.hex] == DesiredState(mode=MODE_1024, is_active=True)
