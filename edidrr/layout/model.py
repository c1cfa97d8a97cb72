"""Desired layout aggregate keyed by display identity"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Iterator, Optional

from edidrr.common.types import DesiredState, Output
from edidrr.layout.resolver import modeIndex_find

logger = logging.getLogger(__name__)


class LayoutConfig:
    """
    Desired state per display identity plus name aliases

    Identities are EDID digest hex strings, never connector names. Names
    (usually the EDID derived name) are aliases that resolve to identities;
    both alias directions are only ever changed through alias_associate().
    """

    def __init__(self) -> None:
        self._states: dict[str, DesiredState] = {}
        self._identity_by_name: dict[str, str] = {}
        self._name_by_identity: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, identity: object) -> bool:
        return identity in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LayoutConfig):
            return NotImplemented
        return (
            self._states == other._states
            and self._identity_by_name == other._identity_by_name
            and self._name_by_identity == other._name_by_identity
        )

    def __repr__(self) -> str:
        return f"LayoutConfig(states={self._states!r}, aliases={self._identity_by_name!r})"

    def alias_associate(self, name: str, identity: str) -> None:
        """
        Bind a name to an identity in both alias directions

        Earlier names of the identity keep resolving to it; the identity's
        display name becomes the latest one. A name that moves to another
        identity stops being the display name of its old identity.

        Args:
            name: Alias name
            identity: Identity digest hex
        """
        previous_identity = self._identity_by_name.get(name)
        if (
            previous_identity is not None
            and previous_identity != identity
            and self._name_by_identity.get(previous_identity) == name
        ):
            del self._name_by_identity[previous_identity]
        self._identity_by_name[name] = identity
        self._name_by_identity[identity] = name

    def aliases_get(self) -> dict[str, str]:
        """Return a copy of the name -> identity alias map"""
        return dict(self._identity_by_name)

    def identity_resolve(self, name_or_identity: str) -> str:
        """
        Resolve an alias to its identity

        Args:
            name_or_identity: Alias name or literal identity

        Returns:
            Aliased identity, or the input unchanged if no alias matches
        """
        return self._identity_by_name.get(name_or_identity, name_or_identity)

    def name_get(self, identity: str) -> str:
        """
        Get the alias name of an identity

        Args:
            identity: Identity digest hex

        Returns:
            Alias name, or the identity itself if it has none
        """
        return self._name_by_identity.get(identity, identity)

    def alias_get(self, identity: str) -> Optional[str]:
        """Return the alias name of an identity, or None"""
        return self._name_by_identity.get(identity)

    def state_get(self, name_or_identity: str) -> Optional[DesiredState]:
        """
        Look up the desired state by alias or identity

        Args:
            name_or_identity: Alias name or identity

        Returns:
            Stored state, or None if the identity is unknown
        """
        return self._states.get(self.identity_resolve(name_or_identity))

    def identityState_get(self, identity: str) -> Optional[DesiredState]:
        """Look up the desired state by literal identity only"""
        return self._states.get(identity)

    def state_set(self, identity: str, state: DesiredState) -> None:
        """Store the desired state for an identity"""
        self._states[identity] = state

    def states_get(self) -> dict[str, DesiredState]:
        """Return a copy of the identity -> state map"""
        return dict(self._states)

    def items(self) -> Iterable[tuple[str, DesiredState]]:
        return self._states.items()

    def copy(self) -> "LayoutConfig":
        """Return an independent copy (states are immutable and shared)"""
        duplicate = LayoutConfig()
        duplicate._states = dict(self._states)
        duplicate._identity_by_name = dict(self._identity_by_name)
        duplicate._name_by_identity = dict(self._name_by_identity)
        return duplicate


def desiredState_fromOutput(output: Output) -> DesiredState:
    """
    Capture the current geometry of a live output

    Args:
        output: Live output

    Returns:
        DesiredState holding width, height and rate of the selected mode;
        the hardware mode name and id are dropped
    """
    mode = output.mode
    return DesiredState(
        mode=replace(mode, name="", mode_id=None) if mode is not None else DesiredState().mode,
        position=output.position,
        rotation=output.rotation,
        is_primary=output.is_primary,
        is_active=output.is_active,
    )


def desiredState_applyToOutput(
    output: Output, state: DesiredState, tolerance: float
) -> Output:
    """
    Return a copy of a live output updated to a desired state

    An inactive state only clears the active flag; the remaining geometry is
    left as reported.

    Args:
        output: Live output
        state: Desired state
        tolerance: Refresh-rate tolerance for selecting the mode (Hz)

    Returns:
        New Output value

    Raises:
        ModeNotFoundError: If the output has modes but none matches
    """
    if not state.is_active:
        return replace(output, is_active=False)

    mode_index = output.mode_index
    if output.modes:
        mode_index = modeIndex_find(output.name, output.modes, state.mode, tolerance, strict=True)
    return replace(
        output,
        is_active=True,
        mode_index=mode_index,
        position=state.position,
        rotation=state.rotation,
        is_primary=state.is_primary,
    )


def layoutConfig_fromOutputs(outputs: Iterable[Output]) -> LayoutConfig:
    """
    Build a layout from a live output snapshot

    Only active outputs with an available identity are captured; each one's
    derived EDID name is recorded as its alias.

    Args:
        outputs: Live outputs from one enumeration

    Returns:
        New LayoutConfig
    """
    config = LayoutConfig()
    for output in outputs:
        if not output.is_active:
            continue
        if not output.edid.isAvailable_check():
            logger.warning(f"Output {output.name} has no usable EDID, not captured")
            continue
        identity = output.edid.hex
        config.alias_associate(output.edid.name, identity)
        config.state_set(identity, desiredState_fromOutput(output))
    return config
