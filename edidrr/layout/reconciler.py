"""Edits and merges applied to a LayoutConfig

All operations mutate the target config in place. A name resolves through
the alias map first and is otherwise taken as a literal identity; unknown
identities are silently ignored.
"""

import logging
from dataclasses import replace

from edidrr.layout.model import LayoutConfig

logger = logging.getLogger(__name__)


def _activeFlag_set(config: LayoutConfig, name: str, is_active: bool | None) -> None:
    """Set (or, with None, flip) the active flag of a known identity"""
    if not name:
        return
    identity = config.identity_resolve(name)
    state = config.identityState_get(identity)
    if state is None:
        logger.debug(f"Ignoring unknown output {name}")
        return
    new_active = (not state.is_active) if is_active is None else is_active
    config.state_set(identity, replace(state, is_active=new_active))
    logger.debug(f"Output {config.name_get(identity)} active={new_active}")


def output_toggle(config: LayoutConfig, name: str) -> None:
    """
    Flip the active flag of an output

    Args:
        config: Layout to edit
        name: Alias name or identity
    """
    _activeFlag_set(config, name, None)


def output_enable(config: LayoutConfig, name: str) -> None:
    """
    Mark an output active

    Args:
        config: Layout to edit
        name: Alias name or identity
    """
    _activeFlag_set(config, name, True)


def output_disable(config: LayoutConfig, name: str) -> None:
    """
    Mark an output inactive

    Args:
        config: Layout to edit
        name: Alias name or identity
    """
    _activeFlag_set(config, name, False)


def reference_set(target: LayoutConfig, reference: LayoutConfig) -> None:
    """
    Merge a reference layout (usually a saved file) into a target layout

    Entries already active in the target are left untouched. Every other
    reference entry replaces the target entry but is forced inactive, so its
    geometry only serves as the default for a later enable. All reference
    aliases are merged into the target.

    Args:
        target: Layout to update (usually the live snapshot)
        reference: Layout providing geometry and aliases
    """
    for identity, reference_state in reference.items():
        current = target.identityState_get(identity)
        if current is not None and current.is_active:
            continue
        target.state_set(identity, replace(reference_state, is_active=False))

    for name, identity in reference.aliases_get().items():
        target.alias_associate(name, identity)
