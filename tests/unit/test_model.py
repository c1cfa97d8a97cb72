"""Unit tests for the LayoutConfig model and output conversions"""

import pytest

from conftest import edidBlob_build

from edidrr.common.errors import ModeNotFoundError
from edidrr.common.types import DesiredState, Edid, Mode, Output, Position, Rotation
from edidrr.identity.edid import edid_decode
from edidrr.layout.codec import layoutConfig_parse, layoutConfig_serialize
from edidrr.layout.model import (
    LayoutConfig,
    desiredState_applyToOutput,
    desiredState_fromOutput,
    layoutConfig_fromOutputs,
)

MODES = (Mode(1920, 1080, 60.0, "1920x1080", mode_id=70), Mode(1280, 720, 59.94, "1280x720", mode_id=71))


def _output(serial: int, is_active: bool = True, **kwargs) -> Output:
    edid = edid_decode(edidBlob_build(serial=serial))
    fields = dict(
        name=f"HDMI-{serial}",
        modes=MODES,
        is_connected=True,
        is_active=is_active,
        controller=100 + serial if is_active else None,
        edid=edid,
    )
    fields.update(kwargs)
    return Output(**fields)


class TestAliasAssociate:
    """Test the bidirectional alias maps"""

    def test_both_directions(self):
        """Test name and identity resolve to each other"""
        config = LayoutConfig()
        config.alias_associate("left", "id-1")
        assert config.identity_resolve("left") == "id-1"
        assert config.name_get("id-1") == "left"

    def test_rebinding_name_drops_old_identity(self):
        """Test moving a name leaves no stale reverse binding"""
        config = LayoutConfig()
        config.alias_associate("left", "id-1")
        config.alias_associate("left", "id-2")
        assert config.identity_resolve("left") == "id-2"
        assert config.alias_get("id-1") is None
        assert config.name_get("id-1") == "id-1"

    def test_rebinding_identity_keeps_old_name(self):
        """Test a second name for an identity adds to the first"""
        config = LayoutConfig()
        config.alias_associate("left", "id-1")
        config.alias_associate("office", "id-1")
        assert config.identity_resolve("left") == "id-1"
        assert config.identity_resolve("office") == "id-1"
        assert config.name_get("id-1") == "office"
        assert config.aliases_get() == {"left": "id-1", "office": "id-1"}

    def test_rebinding_same_pair_is_stable(self):
        """Test re-associating an existing pair changes nothing"""
        config = LayoutConfig()
        config.alias_associate("left", "id-1")
        before = config.copy()
        config.alias_associate("left", "id-1")
        assert config == before

    def test_unknown_name_resolves_to_itself(self):
        """Test literal identities pass through resolution"""
        config = LayoutConfig()
        assert config.identity_resolve("id-9") == "id-9"
        assert config.state_get("id-9") is None


class TestLayoutConfigContainer:
    """Test LayoutConfig container behaviour"""

    def test_state_lookup_by_alias_or_identity(self):
        """Test state_get accepts either key"""
        config = LayoutConfig()
        state = DesiredState(mode=Mode(800, 600, 60.0), is_active=True)
        config.state_set("id-1", state)
        config.alias_associate("left", "id-1")
        assert config.state_get("left") is state
        assert config.state_get("id-1") is state
        assert config.identityState_get("left") is None

    def test_copy_is_independent(self):
        """Test edits to a copy do not leak back"""
        config = LayoutConfig()
        config.state_set("id-1", DesiredState(is_active=True))
        config.alias_associate("left", "id-1")
        duplicate = config.copy()
        duplicate.state_set("id-2", DesiredState())
        duplicate.alias_associate("right", "id-2")
        assert duplicate == duplicate.copy()
        assert "id-2" not in config
        assert config.aliases_get() == {"left": "id-1"}

    def test_iteration_order(self):
        """Test identities iterate in insertion order"""
        config = LayoutConfig()
        for identity in ("c", "a", "b"):
            config.state_set(identity, DesiredState())
        assert list(config) == ["c", "a", "b"]


class TestDesiredStateConversion:
    """Test Output <-> DesiredState conversion functions"""

    def test_fromOutput_captures_geometry(self):
        """Test the selected mode and placement are captured by value"""
        output = _output(1, mode_index=1, position=Position(1920, 0), rotation=Rotation.LEFT, is_primary=True)
        state = desiredState_fromOutput(output)
        assert state == DesiredState(
            mode=Mode(1280, 720, 59.94),
            position=Position(1920, 0),
            rotation=Rotation.LEFT,
            is_primary=True,
            is_active=True,
        )
        assert state.mode.mode_id is None
        assert state.mode.name == ""

    def test_fromOutput_without_modes(self):
        """Test an output with no modes yields an empty mode"""
        state = desiredState_fromOutput(Output(name="VGA-1"))
        assert state.mode == Mode()
        assert state.is_active is False

    def test_applyToOutput_selects_matching_mode(self):
        """Test the mode index follows the desired mode"""
        output = _output(1)
        state = DesiredState(
            mode=Mode(1280, 720, 59.9), position=Position(10, 20), rotation=Rotation.RIGHT, is_active=True
        )
        updated = desiredState_applyToOutput(output, state, tolerance=1.0)
        assert updated.mode_index == 1
        assert updated.position == Position(10, 20)
        assert updated.rotation == Rotation.RIGHT
        assert updated.is_active is True
        assert output.mode_index == 0

    def test_applyToOutput_inactive_only_clears_flag(self):
        """Test an inactive state leaves the geometry as reported"""
        output = _output(1, position=Position(5, 5))
        updated = desiredState_applyToOutput(output, DesiredState(position=Position(99, 99)), 1.0)
        assert updated.is_active is False
        assert updated.position == Position(5, 5)

    def test_applyToOutput_unknown_mode_raises(self):
        """Test an unsupported mode is reported"""
        state = DesiredState(mode=Mode(3840, 2160, 60.0), is_active=True)
        with pytest.raises(ModeNotFoundError):
            desiredState_applyToOutput(_output(1), state, 1.0)


class TestLayoutConfigFromOutputs:
    """Test capturing a live snapshot"""

    def test_only_active_identified_outputs(self, caplog):
        """Test inactive and unidentified outputs are skipped"""
        outputs = [
            _output(1),
            _output(2, is_active=False),
            Output(name="DP-3", modes=MODES, is_connected=True, is_active=True, edid=Edid()),
            Output(name="VGA-1"),
        ]
        config = layoutConfig_fromOutputs(outputs)
        assert len(config) == 1
        assert outputs[0].edid.hex in config
        assert config.identity_resolve(outputs[0].edid.name) == outputs[0].edid.hex
        assert "DP-3 has no usable EDID" in caplog.text

    def test_snapshot_round_trips_through_text(self):
        """Test a captured snapshot survives serialization"""
        config = layoutConfig_fromOutputs([_output(1, is_primary=True), _output(2, position=Position(1920, 0))])
        assert layoutConfig_parse(layoutConfig_serialize(config)) == config
