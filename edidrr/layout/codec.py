"""Line-oriented text encoding of a LayoutConfig

One line per active display:

    <identity-hex> x=<int> y=<int> width=<int> height=<int> rate=<float>
        [name=<alias>] rotation=<normal|left|right|inverted> [primary]

Unknown keys are ignored. A malformed numeric value aborts the whole parse.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Optional

from edidrr.common.errors import ParseError
from edidrr.common.types import DesiredState, Rotation
from edidrr.layout.model import LayoutConfig

logger = logging.getLogger(__name__)

PRIMARY_FLAG = "primary"


def _unsigned_parse(value: str) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(f"expected a non-negative integer, got {value!r}")
    return number


def _rate_parse(value: str) -> float:
    rate = float(value)
    if not math.isfinite(rate) or rate < 0:
        raise ValueError(f"expected a finite non-negative rate, got {value!r}")
    return rate


def _x_apply(state: DesiredState, value: str) -> DesiredState:
    return replace(state, position=replace(state.position, x=_unsigned_parse(value)))


def _y_apply(state: DesiredState, value: str) -> DesiredState:
    return replace(state, position=replace(state.position, y=_unsigned_parse(value)))


def _width_apply(state: DesiredState, value: str) -> DesiredState:
    return replace(state, mode=replace(state.mode, width=_unsigned_parse(value)))


def _height_apply(state: DesiredState, value: str) -> DesiredState:
    return replace(state, mode=replace(state.mode, height=_unsigned_parse(value)))


def _rate_apply(state: DesiredState, value: str) -> DesiredState:
    return replace(state, mode=replace(state.mode, rate=_rate_parse(value)))


def _rotation_apply(state: DesiredState, value: str) -> DesiredState:
    rotation = Rotation.fromToken_get(value)
    if rotation is None:
        logger.debug(f"Ignoring unknown rotation {value!r}")
        return state
    return replace(state, rotation=rotation)


# Typed fields of DesiredState; "name" is an alias and handled separately
_FIELD_PARSERS: dict[str, Callable[[DesiredState, str], DesiredState]] = {
    "x": _x_apply,
    "y": _y_apply,
    "width": _width_apply,
    "height": _height_apply,
    "rate": _rate_apply,
    "rotation": _rotation_apply,
}


def layoutLine_parse(line: str, line_number: int) -> tuple[str, DesiredState, Optional[str]]:
    """
    Parse one non-empty layout line

    Args:
        line: Stripped line text
        line_number: 1-based line number for error reporting

    Returns:
        Tuple of (identity, state, alias name or None)

    Raises:
        ParseError: If a recognised field has a malformed value
    """
    tokens = line.split()
    identity = tokens[0]
    state = DesiredState(is_active=True)
    alias: Optional[str] = None

    for token in tokens[1:]:
        key, separator, value = token.partition("=")
        if not separator:
            if token == PRIMARY_FLAG:
                state = replace(state, is_primary=True)
            continue
        if key == "name":
            alias = value
            continue
        field_apply = _FIELD_PARSERS.get(key)
        if field_apply is None:
            continue
        try:
            state = field_apply(state, value)
        except ValueError as e:
            raise ParseError(f"invalid value {value!r} ({e})", line_number, key) from e

    return identity, state, alias


def layoutConfig_parse(text: str) -> LayoutConfig:
    """
    Parse layout text into a LayoutConfig

    Every parsed entry is active. A repeated identity replaces the earlier
    entry.

    Args:
        text: Layout text

    Returns:
        New LayoutConfig

    Raises:
        ParseError: If any line holds a malformed numeric value
    """
    config = LayoutConfig()
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        identity, state, alias = layoutLine_parse(line, line_number)
        config.state_set(identity, state)
        if alias is not None:
            config.alias_associate(alias, identity)
    return config


def layoutLine_format(identity: str, state: DesiredState, alias: Optional[str]) -> str:
    """Render one layout line (without trailing newline)"""
    parts = [
        identity,
        f"x={state.position.x}",
        f"y={state.position.y}",
        f"width={state.mode.width}",
        f"height={state.mode.height}",
        f"rate={state.mode.rate!r}",
    ]
    if alias is not None:
        parts.append(f"name={alias}")
    parts.append(f"rotation={state.rotation.value}")
    if state.is_primary:
        parts.append(PRIMARY_FLAG)
    return " ".join(parts)


def layoutConfig_serialize(config: LayoutConfig) -> str:
    """
    Render a LayoutConfig as layout text

    Inactive entries are not written, so parsing the result back only
    restores the active displays.

    Args:
        config: Layout to render

    Returns:
        Layout text, one newline-terminated line per active entry
    """
    lines = [
        layoutLine_format(identity, state, config.alias_get(identity)) + "\n"
        for identity, state in config.items()
        if state.is_active
    ]
    return "".join(lines)
